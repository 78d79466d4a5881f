"""
Reading List Manager Test Suite

Tests are organized into:
- unit/: storage, services and middleware helpers, called directly
- integration/: the HTTP API through an ASGI client
"""
