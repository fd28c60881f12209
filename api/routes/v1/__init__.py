"""api/routes/v1/ -- Version 1 routers."""
