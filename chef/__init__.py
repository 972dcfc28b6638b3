"""Describes the Chef Digital domain. Centres around ingesting recipes.

The flow is always the same:

- Get plain text out of what the user gave us (typed text, a photo, a video link).
- Ask a language model to lay the text out as a recipe and parse its reply.
- Store the recipe, or stage it for the user to confirm when it came from the web.

The model, OCR, transcription and web search all sit behind apis or libraries,
so each stage takes its collaborator as an argument and tests fake them.
"""
