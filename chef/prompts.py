PREAMBLE = """
You are a meticulous assistant that turns messy recipe material into a clean,
structured recipe. The material may be text typed by the user, text read from a
photo of a recipe card or cookbook page, the transcript of a cooking video, or
the readable content of a recipe webpage.
Keep the recipe faithful to the material. Do not invent ingredients or steps that
are not supported by it, and drop anything that is not part of the recipe
(adverts, life stories, comments, navigation)."""

FORMAT = """
Respond using exactly this layout and nothing else:

Title: <the recipe name>
Source: <the source URL, or None>
Ingredients:
- <Category name>:
  - <ingredient with quantity>
  - <ingredient with quantity>
- <Another category name>:
  - <ingredient with quantity>
Instructions:
1. <first step>
2. <second step>

Group the ingredients into categories such as "Sauce" or "Dough". If the recipe
has no natural groups use a single category called "Main".
Number every instruction step, one step per line."""


NORMALIZE_RECIPE_PROMPT = f"{PREAMBLE.strip()}\n{FORMAT}".strip()


class NormalizeRecipePrompt:
    """The single instruction block sent to the model."""

    def __init__(
        self,
        text: str,
        source_url: str | None = None,
        *,
        instructions: str | None = None,
    ) -> None:
        self.text = text
        self.source_url = source_url
        self.instructions = (
            NORMALIZE_RECIPE_PROMPT if instructions is None else instructions
        )

    def __str__(self) -> str:
        source = self.source_url if self.source_url else "None"
        return (
            f"{self.instructions}\n\n"
            f"Source URL: {source}\n\n"
            f"Material:\n\"\"\"\n{self.text}\n\"\"\""
        )
