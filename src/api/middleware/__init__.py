from .edge_gate import EdgeGateMiddleware, build_connect_sources

__all__ = ["EdgeGateMiddleware", "build_connect_sources"]
