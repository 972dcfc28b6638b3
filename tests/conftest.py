from pathlib import Path
from typing import AsyncIterator, Callable

from databases import Database
import pytest
import pytest_asyncio

from chef.models import IngredientCategory, Recipe
from db import RecipesRepository


LASAGNA_REPLY = """
Title: Lasagna
Source: None
Ingredients:
- Ragu:
  - 500 g beef mince
  - 2 cloves garlic
- Bechamel:
  - 50 g butter
  - 50 g flour
  - 500 ml milk
Instructions:
1. Brown the mince with the garlic.
2. Whisk the butter, flour and milk into a bechamel.
3. Layer with pasta sheets and bake for 45 minutes.
""".strip()


class FakeLLM:
    def __init__(self, reply: str = LASAGNA_REPLY) -> None:
        self.reply = reply
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


@pytest.fixture
def lasagna_reply() -> str:
    return LASAGNA_REPLY


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_llm() -> type[FakeLLM]:
    return FakeLLM


@pytest.fixture
def make_recipe() -> Callable[..., Recipe]:
    def make(
        title: str = "Lasagna",
        ingredients: dict[str, list[str]] | None = None,
        instructions: list[str] | None = None,
        source_url: str | None = None,
    ) -> Recipe:
        ingredients = (
            {"Ragu": ["500 g beef mince", "2 cloves garlic"]}
            if ingredients is None
            else ingredients
        )
        return Recipe(
            title=title,
            source_url=source_url,
            ingredients=[IngredientCategory(n, i) for n, i in ingredients.items()],
            instructions=["Cook it."] if instructions is None else instructions,
        )

    return make


@pytest_asyncio.fixture
async def repository(tmp_path: Path) -> AsyncIterator[RecipesRepository]:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'chef.db'}")
    await database.connect()
    repo = RecipesRepository(database)
    await repo.create_tables()
    yield repo
    await database.disconnect()
