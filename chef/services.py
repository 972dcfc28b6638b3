import logging
from typing import Any

from chef.discovery import DiscoveryAgent
from chef.extract import TextExtractor
from chef.models import EDITABLE_FIELDS, Recipe, SourceInput, SourceKind, StagedRecipe
from chef.normalize import RecipeNormalizer
from db import RecipesRepository


logger = logging.getLogger(__name__)


async def recipe_from_source(
    source: SourceInput,
    *,
    extractor: TextExtractor,
    normalizer: RecipeNormalizer,
) -> Recipe:
    text = await extractor.extract(source)
    match source.kind, source.payload:
        case SourceKind.video, str(url):
            source_url = url.strip()
        case _:
            source_url = None
    return await normalizer.normalize(text, source_url=source_url)


async def ingest_add(
    source: SourceInput,
    *,
    extractor: TextExtractor,
    normalizer: RecipeNormalizer,
    repository: RecipesRepository,
) -> Recipe:
    """Extract, normalize, store. A failure at any stage stores nothing."""
    recipe = await recipe_from_source(source, extractor=extractor, normalizer=normalizer)
    return await repository.create(recipe)


async def ingest_update(
    id: str,
    *,
    fields: dict[str, Any] | None = None,
    source: SourceInput | None = None,
    extractor: TextExtractor,
    normalizer: RecipeNormalizer,
    repository: RecipesRepository,
) -> Recipe:
    """Apply user edits, optionally re-deriving the recipe from a resubmitted source."""
    await repository.get(id)

    changes: dict[str, Any] = {}
    if source is not None:
        recipe = await recipe_from_source(
            source, extractor=extractor, normalizer=normalizer
        )
        changes = {name: getattr(recipe, name) for name in EDITABLE_FIELDS}
    if fields:
        changes.update(fields)

    return await repository.update(id, changes)


async def search_recipes(query: str, *, repository: RecipesRepository) -> list[Recipe]:
    """Exact title, then ingredients, then everything."""
    query = query.strip()
    if not query:
        return await repository.list_all()

    recipe = await repository.find_by_title(query)
    if recipe is not None:
        return [recipe]

    recipes = await repository.search_by_ingredient(query)
    if recipes:
        return recipes

    logger.info("Nothing matched %r, listing everything", query)
    return await repository.list_all()


async def discover_recipe(query: str, *, agent: DiscoveryAgent) -> StagedRecipe:
    return await agent.discover(query)


async def confirm_recipe(
    staged: StagedRecipe,
    *,
    repository: RecipesRepository,
) -> Recipe:
    return await repository.create(staged.recipe)
