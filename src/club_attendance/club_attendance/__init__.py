"""Sport club attendance package.

Feature modules (attendance, sessions, reports) follow the same layering:
models, store adapters behind a repository protocol, services, and a thin
Flask controller.
"""
