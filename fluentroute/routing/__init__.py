# Routing package init
"""
FluentRoute - Routing Package
==============================

Module Inventory:
    - params.py: Parameter descriptors and the request parameter pipeline
    - chain.py:  Route-level middleware composition
    - route.py:  Fluent Route builder, RouteDefinition, Router shortcuts
"""

from fluentroute.routing.chain import Endpoint, Middleware, compose
from fluentroute.routing.params import (
    Param,
    ParamLocation,
    ParameterPipeline,
    RouteContext,
)
from fluentroute.routing.route import Route, RouteDefinition, Router, route

__all__ = [
    "Endpoint",
    "Middleware",
    "Param",
    "ParamLocation",
    "ParameterPipeline",
    "Route",
    "RouteContext",
    "RouteDefinition",
    "Router",
    "compose",
    "route",
]
