"""HTTP surface: aiohttp server and middleware."""
