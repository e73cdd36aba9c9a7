"""Browser automation and status polling for DeepWiki queries."""
