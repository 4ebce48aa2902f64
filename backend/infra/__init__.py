"""Process-level infrastructure: admin view cache and health reporting."""
