"""
OpenTelemetry distributed tracing demo: frontend -> producer API -> queue -> consumer
"""

__version__ = "1.0.0"
