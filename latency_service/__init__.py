"""
Latency Service - Synthetic backend with Gamma-distributed latency.

Emulates the latency and failure profile of a real service so that
monitoring, tracing, autoscaling and load-balancing setups can be
exercised under controlled conditions.
"""
__version__ = "0.1.0"
