"""
FastAPI routers grouped by domain (users, inventories, health).

Each file inside this package exposes an APIRouter that is included in the
main application (app.py). Handlers only parse input, call a service and wrap
the result in the response envelope.
"""
