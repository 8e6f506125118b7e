"""
Integration tests for the rebalanser library.

These tests run several followers against one shared in-memory
coordination state, with a simulated coordinator driving the protocol.

Run integration tests:
    pytest tests/integration/ -v

Skip integration tests:
    pytest tests/ -v -m "not integration"
"""
