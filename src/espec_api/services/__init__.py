"""Service functions composing upstream calls for the dashboard routes."""
