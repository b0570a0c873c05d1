"""
voice_token_service.cache

Token cache package (Redis-backed in deployments, in-memory for tests and local runs).
"""
