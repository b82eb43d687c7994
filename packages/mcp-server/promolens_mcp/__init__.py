"""
PromoLens MCP Server - Model Context Protocol server for promotion analytics.

Exposes the PromoLens engine to MCP clients:
- Attribution tools (journey attribution, model comparison)
- Redemption tools (overview, daily trends)
- Cohort and incremental revenue tools
- Fraud tools (pattern ranking, risk scoring)
- Performance report generation

Usage:
    # Via CLI
    promolens-mcp

    # Via Python
    from promolens_mcp import server
    server.main()

    # Via .mcp.json
    {
        "mcpServers": {
            "promolens": {
                "command": "promolens-mcp",
                "env": {"GCP_PROJECT_ID": "my-project"}
            }
        }
    }
"""

__version__ = "0.1.0"
