from typing import Callable, Type, TypeVar

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError as PydanticValidationError

from studyforge.features.degraded.policy import DegradedModePolicy

ModelT = TypeVar("ModelT", bound=BaseModel)


async def get_policy(request: Request) -> DegradedModePolicy:
    """The policy built at startup with the app's store and provider."""
    return request.app.state.policy


def json_body(model: Type[ModelT]) -> Callable:
    """
    Dependency that parses the JSON body into ``model``.

    Routes list it after the auth dependency, so an unauthenticated caller
    gets 401 even when the body is malformed. Errors keep the ``("body", ...)``
    locations FastAPI would report.
    """

    async def parse(request: Request) -> ModelT:
        raw = await request.body()
        try:
            return model.model_validate_json(raw)
        except PydanticValidationError as exc:
            raise RequestValidationError(
                [{**err, "loc": ("body", *err["loc"])} for err in exc.errors(include_url=False)]
            ) from exc

    return parse
