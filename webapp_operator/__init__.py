"""WebApp Operator: converges WebApp custom resources into a Deployment and a Service."""

__version__ = "1.0.0"
