"""
chapa.api — FastAPI surface for badges, impact scores and verification.

Modules:
    endpoints  — create_app() factory and route handlers.
    client_ip  — Client address resolution behind a reverse proxy.
"""
