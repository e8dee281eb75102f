"""QloudSound API - HTTP routers."""
