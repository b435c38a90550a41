"""
Routing - controller/route decorators, parameter markers, the route
compiler and the per-request pipeline.
"""

from .compiler import CompiledRoute, RouteCompiler
from .decorators import (
    DELETE,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    ControllerOptions,
    RouteDecorator,
    RouteSpec,
    controller,
    header,
    http_code,
    route,
)
from .descriptors import (
    ControllerDescriptor,
    RouteDescriptor,
    build_controller_descriptor,
    describe_routes,
)
from .params import (
    ArgumentExtractor,
    Body,
    Ctx,
    Headers,
    Param,
    ParamDescriptor,
    ParamMarker,
    ParamSource,
    Query,
    Req,
    Res,
    collect_params,
    compile_validator,
    read_params,
)
from .pipeline import ExecutionContext, RequestPipeline, error_body

__all__ = [
    "RouteCompiler",
    "CompiledRoute",
    "controller",
    "ControllerOptions",
    "RouteDecorator",
    "RouteSpec",
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "HEAD",
    "OPTIONS",
    "route",
    "http_code",
    "header",
    "ControllerDescriptor",
    "RouteDescriptor",
    "build_controller_descriptor",
    "describe_routes",
    "ParamSource",
    "ParamMarker",
    "ParamDescriptor",
    "Body",
    "Query",
    "Param",
    "Headers",
    "Req",
    "Res",
    "Ctx",
    "ArgumentExtractor",
    "collect_params",
    "read_params",
    "compile_validator",
    "ExecutionContext",
    "RequestPipeline",
    "error_body",
]
