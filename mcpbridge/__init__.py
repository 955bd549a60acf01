"""mcpbridge - stdio to HTTP bridge for MCP (JSON-RPC 2.0) servers.

Usage:
    from mcpbridge import BridgeProxy, MessageLoop, build_config

    config = build_config("https://pm.example.com/mcp", token="abc123")
    async with BridgeProxy(config) as proxy:
        response = await proxy.proxy_request(
            {"jsonrpc": "2.0", "id": 1, "method": "tools/list"}
        )
"""

__version__ = "0.1.0"

from mcpbridge.bridge import BridgeProxy, MessageLoop
from mcpbridge.config import AuthMethod, ProxyConfig, build_config

__all__ = [
    "AuthMethod",
    "BridgeProxy",
    "MessageLoop",
    "ProxyConfig",
    "__version__",
    "build_config",
]
