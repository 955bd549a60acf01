"""Alternative front-ends: a stdio MCP tool server and an HTTP adapter.

Both call BridgeProxy.proxy_request() for every upstream operation.
"""
