import asyncio

import pytest

from chef.errors import DuplicateTitleError, InvalidRecipeError, NotFoundError
from chef.models import IngredientCategory
from db import RecipesRepository, like_pattern


@pytest.mark.asyncio
async def test_create_and_get(repository: RecipesRepository, make_recipe) -> None:
    recipe = make_recipe(
        ingredients={"Ragu": ["beef", "garlic"], "Bechamel": ["butter", "milk"]},
        instructions=["Brown.", "Whisk.", "Bake."],
        source_url="https://youtu.be/abc",
    )
    created = await repository.create(recipe)

    assert created.id
    assert created.created_at is not None
    assert created.created_at == created.updated_at
    assert recipe.id is None

    got = await repository.get(created.id)
    assert got.to_dict() == created.to_dict()
    assert [c.name for c in got.ingredients] == ["Ragu", "Bechamel"]
    assert got.instructions == ["Brown.", "Whisk.", "Bake."]
    assert got.source_url == "https://youtu.be/abc"


@pytest.mark.asyncio
async def test_duplicate_title(repository: RecipesRepository, make_recipe) -> None:
    first = await repository.create(make_recipe("Lasagna"))
    with pytest.raises(DuplicateTitleError) as exc:
        await repository.create(make_recipe("Lasagna", instructions=["Different."]))
    assert exc.value.title == "Lasagna"

    recipes = await repository.list_all()
    assert [r.id for r in recipes if r.title == "Lasagna"] == [first.id]
    assert (await repository.get(first.id)).instructions == ["Cook it."]


@pytest.mark.asyncio
async def test_concurrent_duplicate_creates(
    repository: RecipesRepository, make_recipe
) -> None:
    results = await asyncio.gather(
        repository.create(make_recipe("Lasagna")),
        repository.create(make_recipe("Lasagna")),
        return_exceptions=True,
    )
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], DuplicateTitleError)
    assert len(await repository.list_all()) == 1


@pytest.mark.asyncio
async def test_titles_are_case_sensitive(
    repository: RecipesRepository, make_recipe
) -> None:
    await repository.create(make_recipe("Lasagna"))
    lower = await repository.create(make_recipe("lasagna"))

    found = await repository.find_by_title("lasagna")
    assert found is not None and found.id == lower.id
    assert await repository.find_by_title("LASAGNA") is None


@pytest.mark.asyncio
async def test_titles_are_stored_stripped(
    repository: RecipesRepository, make_recipe
) -> None:
    created = await repository.create(make_recipe("  Lasagna \n"))
    assert created.title == "Lasagna"
    assert (await repository.find_by_title("Lasagna")).id == created.id

    with pytest.raises(DuplicateTitleError):
        await repository.create(make_recipe(" Lasagna"))

    soup = await repository.create(make_recipe("Soup"))
    updated = await repository.update(soup.id, {"title": " Leek soup "})
    assert updated.title == "Leek soup"
    assert (await repository.get(soup.id)).title == "Leek soup"


@pytest.mark.parametrize(
    "ingredients,instructions",
    (
        ({}, ["Cook it."]),
        ({"Main": []}, ["Cook it."]),
        ({"Main": ["egg"]}, []),
        ({"": ["egg"]}, ["Cook it."]),
    ),
)
@pytest.mark.asyncio
async def test_create_validates(
    repository: RecipesRepository, make_recipe, ingredients, instructions
) -> None:
    with pytest.raises(InvalidRecipeError):
        await repository.create(
            make_recipe(ingredients=ingredients, instructions=instructions)
        )
    assert await repository.list_all() == []


@pytest.mark.asyncio
async def test_update(repository: RecipesRepository, make_recipe) -> None:
    created = await repository.create(make_recipe("Lasagna"))
    updated = await repository.update(
        created.id,
        {"title": "Lasagne", "instructions": ["Layer.", "Bake."]},
    )
    assert updated.id == created.id
    assert updated.created_at == created.created_at
    assert updated.updated_at is not None and created.updated_at is not None
    assert updated.updated_at >= created.updated_at

    got = await repository.get(created.id)
    assert got.title == "Lasagne"
    assert got.instructions == ["Layer.", "Bake."]
    assert got.ingredients == created.ingredients
    assert await repository.find_by_title("Lasagna") is None


@pytest.mark.asyncio
async def test_update_unknown_id(repository: RecipesRepository) -> None:
    with pytest.raises(NotFoundError):
        await repository.update("nope", {"title": "Soup"})


@pytest.mark.parametrize(
    "fields",
    (
        {"title": "  "},
        {"ingredients": []},
        {"ingredients": [IngredientCategory("Main", [])]},
        {"instructions": []},
        {"id": "another"},
    ),
)
@pytest.mark.asyncio
async def test_update_validates(
    repository: RecipesRepository, make_recipe, fields
) -> None:
    created = await repository.create(make_recipe("Lasagna"))
    with pytest.raises(InvalidRecipeError):
        await repository.update(created.id, fields)
    assert (await repository.get(created.id)).to_dict() == created.to_dict()


@pytest.mark.asyncio
async def test_update_onto_existing_title(
    repository: RecipesRepository, make_recipe
) -> None:
    await repository.create(make_recipe("Lasagna"))
    soup = await repository.create(make_recipe("Soup"))
    with pytest.raises(DuplicateTitleError):
        await repository.update(soup.id, {"title": "Lasagna"})
    assert (await repository.get(soup.id)).title == "Soup"


@pytest.mark.asyncio
async def test_get_unknown_id(repository: RecipesRepository) -> None:
    with pytest.raises(NotFoundError):
        await repository.get("nope")


@pytest.mark.asyncio
async def test_search_by_ingredient(repository: RecipesRepository, make_recipe) -> None:
    await repository.create(
        make_recipe("Aglio e olio", ingredients={"Sauce": ["4 cloves Garlic", "Oil"]})
    )
    await repository.create(
        make_recipe("Garlic bread", ingredients={"Bread": ["Baguette", "Butter"]})
    )
    await repository.create(
        make_recipe("Pesto", ingredients={"Garlic things": ["Basil", "garlic"]})
    )

    got = await repository.search_by_ingredient("GARLIC")
    assert [r.title for r in got] == ["Aglio e olio", "Pesto"]

    # Category names and titles are not ingredients.
    assert await repository.search_by_ingredient("things") == []
    assert await repository.search_by_ingredient("bread") == []


@pytest.mark.asyncio
async def test_search_by_ingredient_is_literal(
    repository: RecipesRepository, make_recipe
) -> None:
    await repository.create(make_recipe("Cake", ingredients={"Main": ["100% cocoa"]}))
    await repository.create(make_recipe("Bread", ingredients={"Main": ["flour00"]}))

    assert [r.title for r in await repository.search_by_ingredient("0%")] == ["Cake"]
    assert await repository.search_by_ingredient("r_0") == []
    assert [r.title for r in await repository.search_by_ingredient("r00")] == ["Bread"]


@pytest.mark.asyncio
async def test_list_all_ordered_by_title(
    repository: RecipesRepository, make_recipe
) -> None:
    for title in ("Stew", "Apple pie", "Lasagna"):
        await repository.create(make_recipe(title))
    assert [r.title for r in await repository.list_all()] == ["Apple pie", "Lasagna", "Stew"]


@pytest.mark.asyncio
async def test_create_tables_is_idempotent(repository: RecipesRepository) -> None:
    await repository.create_tables()


@pytest.mark.parametrize(
    "term,expected",
    (
        ("Garlic", "%garlic%"),
        ("100%", "%100\\%%"),
        ("a_b", "%a\\_b%"),
        ("back\\slash", "%back\\\\slash%"),
    ),
)
def test_like_pattern(term: str, expected: str) -> None:
    assert like_pattern(term) == expected
