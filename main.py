import contextlib
import logging
from typing import Any

from rich.logging import RichHandler
from starlette.applications import Starlette
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException, MultiPartParser
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse
from starlette.routing import Route

from chef import errors
from chef.aopenai import ChatLLM
from chef.discovery import DiscoveryAgent
from chef.extract import TextExtractor
from chef.models import Recipe, SourceInput, StagedRecipe, parse_fields
from chef.normalize import RecipeNormalizer
from chef.services import (
    confirm_recipe,
    discover_recipe,
    ingest_add,
    ingest_update,
    search_recipes,
)
import config
import db


CONFIG = config.Config()


STATUS_CODES: dict[type[errors.ChefError], int] = {
    errors.EmptyInputError: 400,
    errors.InvalidRecipeError: 400,
    errors.UnsupportedSourceError: 400,
    errors.InvalidSourceError: 400,
    errors.NotFoundError: 404,
    errors.NoResultsError: 404,
    errors.DuplicateTitleError: 409,
    errors.UploadTooLargeError: 413,
    errors.ExtractionError: 422,
    errors.TranscriptUnavailableError: 422,
    errors.MalformedResponseError: 502,
    errors.FetchError: 502,
    errors.SearchError: 502,
    errors.CompletionError: 502,
}


logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: Starlette):
    logging.basicConfig(
        level=CONFIG.log_level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    await db.db.connect()
    repo = db.RecipesRepository(db.db)
    await repo.create_tables()

    llm = ChatLLM()
    normalizer = RecipeNormalizer(llm)
    agent = DiscoveryAgent(normalizer=normalizer)
    app.state.repo = repo
    app.state.normalizer = normalizer
    app.state.extractor = TextExtractor(openai_client=llm.openai_client)
    app.state.agent = agent
    yield
    await agent.search.close()
    await llm.close()
    await db.db.disconnect()


class InMemoryMultiPartParser(MultiPartParser):
    """Multipart parsing that never spools an upload to disk.

    Uploaded files stay in memory up to `max_upload_size`; a bigger upload is
    refused before any of its bytes past the limit are buffered.
    """

    spool_max_size = CONFIG.max_upload_size

    def on_part_begin(self) -> None:
        super().on_part_begin()
        self.part_size = 0

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._current_part.file is not None:
            self.part_size += end - start
            if self.part_size > self.spool_max_size:
                raise errors.UploadTooLargeError(self.spool_max_size)
        super().on_part_data(data, start, end)


async def read_form(request: Request) -> FormData:
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data"):
        return await request.form()
    parser = InMemoryMultiPartParser(request.headers, request.stream())
    try:
        return await parser.parse()
    except MultiPartException as e:
        raise HTTPException(status_code=400, detail=e.message) from e


async def source_from_request(request: Request) -> SourceInput:
    form = await read_form(request)
    try:
        return await source_from_form(form)
    finally:
        await form.close()


def recipes_response(recipes: list[Recipe]) -> JSONResponse:
    return JSONResponse([r.to_dict() for r in recipes])


async def source_from_form(form: FormData) -> SourceInput:
    image = form.get("image")
    if isinstance(image, UploadFile):
        # Read here, the upload is gone once the form closes.
        data = await image.read()
        if data:
            return SourceInput.image(data)
    video_url = form.get("video-url")
    if isinstance(video_url, str) and video_url.strip():
        return SourceInput.video(video_url)
    content = form.get("content")
    if isinstance(content, str):
        return SourceInput.text(content)
    raise errors.EmptyInputError()


async def json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError as e:
        raise errors.InvalidRecipeError("The request body must be JSON.") from e
    if not isinstance(body, dict):
        raise errors.InvalidRecipeError("The request body must be a JSON object.")
    return body


async def chef_error(request: Request, exc: Exception) -> JSONResponse:
    code = STATUS_CODES.get(type(exc), 500)
    logger.warning("%s %s failed: %r", request.method, request.url.path, exc)
    return JSONResponse(
        {"error": type(exc).__name__, "detail": str(exc)}, status_code=code
    )


async def homepage(request: Request) -> JSONResponse:
    return recipes_response(await request.app.state.repo.list_all())


async def search(request: Request) -> JSONResponse:
    query = request.query_params.get("q", "")
    recipes = await search_recipes(query, repository=request.app.state.repo)
    return recipes_response(recipes)


async def recipe_detail(request: Request) -> HTMLResponse:
    id = request.path_params["id"]
    recipe = await request.app.state.repo.get(id)
    return HTMLResponse(recipe.html)


async def add(request: Request) -> JSONResponse:
    source = await source_from_request(request)
    recipe = await ingest_add(
        source,
        extractor=request.app.state.extractor,
        normalizer=request.app.state.normalizer,
        repository=request.app.state.repo,
    )
    return JSONResponse(recipe.to_dict(), status_code=201)


async def edit(request: Request) -> JSONResponse:
    fields = parse_fields(await json_body(request))
    recipe = await ingest_update(
        request.path_params["id"],
        fields=fields,
        extractor=request.app.state.extractor,
        normalizer=request.app.state.normalizer,
        repository=request.app.state.repo,
    )
    return JSONResponse(recipe.to_dict())


async def resubmit(request: Request) -> JSONResponse:
    source = await source_from_request(request)
    recipe = await ingest_update(
        request.path_params["id"],
        source=source,
        extractor=request.app.state.extractor,
        normalizer=request.app.state.normalizer,
        repository=request.app.state.repo,
    )
    return JSONResponse(recipe.to_dict())


async def discover(request: Request) -> JSONResponse:
    query = request.query_params.get("query")
    if query is None:
        form = await read_form(request)
        try:
            value = form.get("query")
        finally:
            await form.close()
        query = value if isinstance(value, str) else ""
    staged = await discover_recipe(query, agent=request.app.state.agent)
    return JSONResponse(staged.to_dict())


async def confirm(request: Request) -> JSONResponse:
    staged = StagedRecipe.from_dict(await json_body(request))
    recipe = await confirm_recipe(staged, repository=request.app.state.repo)
    return JSONResponse(recipe.to_dict(), status_code=201)


app = Starlette(
    debug=CONFIG.env == config.Env.local,
    routes=[
        Route("/", homepage),
        Route("/recipes/", search),
        Route("/recipes", add, methods=["POST"]),
        Route("/recipes/{id:str}", recipe_detail, methods=["GET"]),
        Route("/recipes/{id:str}", edit, methods=["PATCH"]),
        Route("/recipes/{id:str}/resubmit", resubmit, methods=["POST"]),
        Route("/discover", discover, methods=["POST"]),
        Route("/discover/confirm", confirm, methods=["POST"]),
    ],
    exception_handlers={errors.ChefError: chef_error},
    lifespan=lifespan,
)
