"""Run the AutoQuote MCP server."""

from autoquote.mcp.repair_server import create_mcp_server


def main():
    """Run the MCP server over stdio."""
    server = create_mcp_server()
    server.run(transport="stdio")


if __name__ == "__main__":
    main()
