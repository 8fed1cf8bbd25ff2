"""MCP tool registration for the IPFS Gallery MCP Server"""
