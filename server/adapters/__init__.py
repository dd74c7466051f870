"""Platform adapters for funcbridge.

This package contains adapters that transform platform-specific event formats
(DigitalOcean Functions, AWS API Gateway) into the canonical AdapterRequest
consumed by the application handler, and canonical responses back into each
platform's response format.

Each adapter handles:
- Event recognition (can_handle)
- Event format transformation (platform-specific -> canonical)
- Response format transformation (canonical -> platform-specific)
- The 500 fallback when the application handler raises
"""

from .aws_api_gateway import ApiGatewayV1Adapter, ApiGatewayV1AdapterOptions
from .digital_ocean import HttpFunctionAdapter, HttpFunctionAdapterOptions

__all__ = [
    "ApiGatewayV1Adapter",
    "ApiGatewayV1AdapterOptions",
    "HttpFunctionAdapter",
    "HttpFunctionAdapterOptions",
]
