"""Server-side catalog listing and favorite set store."""
