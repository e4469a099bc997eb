from typing import Union


class NonNullStr(str):
    """Str class without None values"""

    def __new__(cls, s: str | None):
        if s is None:
            raise ValueError(
                f"Value for {cls} was None. Did you specify your env vars?"
            )
        return str.__new__(cls, s)


class URL(NonNullStr):
    protocol_delim = "://"

    def add(self, other: Union["URL", str]):
        """Joins a path onto the url with exactly one slash between them"""
        return URL(self.rstrip("/") + "/" + other.strip("/"))

    def add_protocol(self, protocol: str) -> "URL":
        """Adds protocol if none exists"""
        if self.protocol_delim in self:
            raise ValueError(f"{self} contains a protocol already")

        return URL(protocol + self.protocol_delim + self.strip("/"))

    def with_query(self, **params: str) -> "URL":
        """Appends query params. Values are not escaped so that stream
        names keep their '@' and '/' separators"""
        query = "&".join(f"{key}={value}" for key, value in params.items())
        return URL(f"{self}?{query}")

    def __eq__(self, other: "URL"):  # type:ignore[override]
        return self.strip("/") == other.strip("/")

    def __hash__(self):
        return hash((str(self)))
