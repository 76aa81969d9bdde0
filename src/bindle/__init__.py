# ABOUTME: Bindle - ingestion of EPUB, CBZ and CBR archives into a personal library.
# ABOUTME: Exposes the package version; submodules hold formats, dedup, and file organization.

__version__ = "0.1.0"
