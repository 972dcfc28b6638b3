class ChefError(Exception):
    pass


class EmptyInputError(ChefError):
    def __init__(self, message: str = "Nothing to work with, the input is blank."):
        super().__init__(message)


class ExtractionError(ChefError):
    pass


class UnsupportedSourceError(ChefError):
    def __init__(self, url: str):
        super().__init__(f"Unsupported video source: {url}")
        self.url = url


class TranscriptUnavailableError(ChefError):
    def __init__(self, url: str, reason: str = "No transcript available"):
        super().__init__(f"{reason}: {url}")
        self.url = url
        self.reason = reason


class MalformedResponseError(ChefError):
    def __init__(self, message: str, reply: str = ""):
        super().__init__(message)
        self.reply = reply


class CompletionError(ChefError):
    pass


class InvalidRecipeError(ChefError):
    pass


class DuplicateTitleError(ChefError):
    def __init__(self, title: str):
        super().__init__(f"A recipe titled {title!r} already exists.")
        self.title = title


class NotFoundError(ChefError):
    def __init__(self, id: str):
        super().__init__(f"Recipe not found: {id}")
        self.id = id


class NoResultsError(ChefError):
    def __init__(self, query: str):
        super().__init__(f"No search results for {query!r}")
        self.query = query


class SearchError(ChefError):
    pass


class FetchError(ChefError):
    def __init__(self, url: str, reason: str = "Fetch failed"):
        super().__init__(f"{reason}: {url}")
        self.url = url
        self.reason = reason


class InvalidSourceError(ChefError):
    pass


class UploadTooLargeError(ChefError):
    def __init__(self, limit: int):
        super().__init__(f"Uploads are limited to {limit} bytes.")
        self.limit = limit
