from cdp_mcp.mcp.server import run

run()
