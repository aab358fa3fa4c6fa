"""
Collab Platform API - Pipeline Route
=====================================

What:  APIRoute subclass that runs every endpoint through the inner
       pipeline stages.
How:   get_route_handler() wraps FastAPI's handler (body/query parsing and
       validation, dependencies, the endpoint, serialization):

           DeadlineEnforcer.run(handler)
               ├── success → shape_response()   (success envelope)
               └── failure → FailureTranslator  (failure envelope)

Usage:
    router = APIRouter(prefix="/users", route_class=PipelineRoute)

The enforcer and translator are read from request.app.state, where
create_app() installs them.
"""

from typing import Callable, Coroutine, Any

from fastapi.routing import APIRoute
from starlette.requests import Request
from starlette.responses import Response

from collab_api.middleware.request_id import get_request_context
from collab_api.pipeline.envelope import shape_response


class PipelineRoute(APIRoute):
    """Route class applying deadline, shaping and failure translation."""

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()

        async def pipeline_handler(request: Request) -> Response:
            context = get_request_context(request)
            state = request.app.state
            try:
                response = await state.deadline.run(handler(request))
            except Exception as exc:
                return await state.failure_translator.translate(request, exc)
            return shape_response(response, context.correlation_id)

        return pipeline_handler
