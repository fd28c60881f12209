"""api/routes/ -- Versioned API routers."""
