"""API Resilience Implementations.

Contains the delay primitive, the shared token-bucket rate limiter and the
retry service that wraps every outbound provider call.
Bounded Context: API Resilience
"""
