"""HTTP surface shared across domains: health check and dependency providers"""
