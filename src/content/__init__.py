"""Dynamic content API engine.

Validators, the entry normalizer, the content router, the request
orchestrator and the middleware pipeline that wraps it. Persistence and
HTTP are supplied from outside through :mod:`src.content.protocols`.
"""
