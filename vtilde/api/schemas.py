"""
vtilde.api.schemas — Shared request-body base
==============================================

The web client sends camelCase JSON (``gameApiId``, ``reviewText``).
Request models inherit :class:`CamelModel` so fields stay snake_case in
Python while both spellings are accepted on the wire.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def changes(self) -> dict:
        """Fields the client actually sent, keyed by their camelCase name."""
        return self.model_dump(by_alias=True, exclude_unset=True)
