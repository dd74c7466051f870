"""Function entrypoint for funcbridge.

DigitalOcean Functions call main(event); AWS Lambda calls
lambda_handler(event, context). Both share one dispatcher built lazily from
configuration, so warm starts reuse the loaded application handler.
"""

import importlib
import logging
from typing import Any, Dict, List, Optional

from core.config_schema import FuncbridgeConfig
from core.interfaces import AdapterContract
from core.logging_utils import configure_json_logging
from core.validators import (
    ConfigurationError,
    get_enabled_adapters,
    get_logging_config,
    load_config,
)
from server.adapters import (
    ApiGatewayV1Adapter,
    ApiGatewayV1AdapterOptions,
    HttpFunctionAdapter,
    HttpFunctionAdapterOptions,
)
from server.dispatcher import AdapterDispatcher, RequestHandler

logger = logging.getLogger(__name__)

# Module-level dispatcher instance for warm starts
_dispatcher: Optional[AdapterDispatcher] = None


def load_handler(import_path: str) -> RequestHandler:
    """Import the application handler from a 'module:attribute' path.

    Args:
        import_path: Handler import path, e.g. 'myapp.main:handle'

    Returns:
        The handler callable

    Raises:
        ConfigurationError: If the module or attribute cannot be loaded
    """
    module_name, _, attribute = import_path.partition(":")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(
            f"Failed to import handler module '{module_name}': {e}"
        ) from e

    handler = module
    for part in attribute.split("."):
        handler = getattr(handler, part, None)
        if handler is None:
            raise ConfigurationError(
                f"Handler '{attribute}' not found in module '{module_name}'"
            )

    if not callable(handler):
        raise ConfigurationError(f"Handler '{import_path}' is not callable")

    return handler


def build_adapters(config: FuncbridgeConfig) -> List[AdapterContract]:
    """Instantiate the enabled adapters in dispatch order.

    Args:
        config: Validated configuration

    Returns:
        List of adapters
    """
    adapters: List[AdapterContract] = []

    for name in get_enabled_adapters(config):
        adapter_config = getattr(config.adapters, name)
        if name == "digital_ocean":
            adapters.append(
                HttpFunctionAdapter(
                    HttpFunctionAdapterOptions(
                        strip_base_path=adapter_config.strip_base_path
                    )
                )
            )
        elif name == "aws_api_gateway":
            adapters.append(
                ApiGatewayV1Adapter(
                    ApiGatewayV1AdapterOptions(
                        strip_base_path=adapter_config.strip_base_path
                    )
                )
            )

    return adapters


def build_dispatcher(config: FuncbridgeConfig) -> AdapterDispatcher:
    """Build a dispatcher from configuration.

    Args:
        config: Validated configuration

    Returns:
        Configured AdapterDispatcher
    """
    adapters = build_adapters(config)
    dispatcher = AdapterDispatcher(
        handler=load_handler(config.handler),
        adapters=adapters,
        respond_with_errors=config.respond_with_errors,
    )

    logger.info(
        "Dispatcher initialized",
        extra={
            "handler": config.handler,
            "adapters": [adapter.get_adapter_name() for adapter in adapters],
            "respond_with_errors": config.respond_with_errors,
        },
    )

    return dispatcher


def get_dispatcher() -> AdapterDispatcher:
    """Get or create the dispatcher instance.

    Uses lazy initialization to support warm starts.

    Returns:
        AdapterDispatcher instance
    """
    global _dispatcher

    if _dispatcher is None:
        config = load_config()
        logging_config = get_logging_config(config)
        configure_json_logging(
            level=logging_config["level"], pretty=logging_config["pretty"]
        )
        _dispatcher = build_dispatcher(config)

    return _dispatcher


def main(event: Dict[str, Any]) -> Dict[str, Any]:
    """DigitalOcean Functions entrypoint.

    Args:
        event: Function arguments, including the __ow_* HTTP fields

    Returns:
        HTTP response dictionary with statusCode, headers, and body
    """
    return get_dispatcher().forward(event)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """AWS Lambda entrypoint for API Gateway proxy events.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        API Gateway proxy response dictionary
    """
    request_id = getattr(context, "aws_request_id", None) or "unknown"
    logger.info("Lambda invocation started", extra={"request_id": request_id})

    return get_dispatcher().forward(event)
