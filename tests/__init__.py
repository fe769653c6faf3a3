"""
Tests Package - Unit and integration tests for spotifier.
=========================================================

Test modules:
- test_schemas: Period encodings, task status derivation
- test_cache: File and memory cache backends
- test_dispatcher: Pacing, identity rotation, transport errors
- test_auth: Login state machine, expiry, cookie persistence
- test_extraction: Page extractors
- test_client: Public client against the fake portal
- test_config: Settings loading
- test_cli: Command-line interface

Run tests with:
    pytest tests/
    pytest tests/ -m "not slow"
"""
