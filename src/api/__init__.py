"""HTTP API of the Ratekeeper service, built on FastAPI.

- **main**: application factory, lifespan (schema bootstrap and seeding) and
  the /health and /info endpoints
- **routers**: the ``/records`` routes for listing, resolving and submitting
  tax-rate records
- **middleware**: correlation ids, request logging and exception handlers
- **schemas**: wire models for records and error responses
- **utils**: the orjson response class
"""
