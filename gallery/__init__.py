"""Gallery storage core: pluggable providers, image derivation and uploads."""
