"""Secret payload schemas.

A secret is a tagged union on ``type``: ``password`` or ``creditcard``.
Validation picks the variant from the discriminator first, then checks the
variant fields, so a wrong or missing ``type`` never reaches field checks.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from domainvault.core.errors import MalformedInput

DOMAIN_MAX_LENGTH = 255


class _SecretBase(BaseModel):
    domain: str = Field(min_length=1, max_length=DOMAIN_MAX_LENGTH)

    model_config = {"extra": "forbid", "strict": True}


class PasswordSecret(_SecretBase):
    type: Literal["password"]
    username: str
    password: str


class CreditCardSecret(_SecretBase):
    type: Literal["creditcard"]
    number: str = Field(pattern=r"^[0-9]+$")
    cvc: str
    fullname: str
    year: int
    month: int = Field(ge=1, le=12)


Secret = Annotated[Union[PasswordSecret, CreditCardSecret], Field(discriminator="type")]

_secret_adapter: TypeAdapter[Secret] = TypeAdapter(Secret)


def parse_secret(payload: Any, *, domain: Optional[str] = None) -> Secret:
    """Validate a request body against the secret variants.

    When ``domain`` is given it is the key the secret is stored under: a body
    without ``domain`` inherits it, a body with a different one is rejected.
    """
    if not isinstance(payload, dict):
        raise MalformedInput("Secret payload must be a JSON object", code="invalid_json")
    data = dict(payload)
    if domain is not None:
        body_domain = data.get("domain")
        if body_domain is None:
            data["domain"] = domain
        elif body_domain != domain:
            raise MalformedInput(
                f"Body domain {body_domain!r} does not match path domain {domain!r}",
                code="domain_mismatch",
            )
    try:
        return _secret_adapter.validate_python(data)
    except ValidationError as exc:
        raise MalformedInput(
            "Secret payload does not match the password or creditcard shape",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc


def load_secret(document: dict) -> Secret:
    """Rehydrate a stored document; stored rows were validated on the way in."""
    return _secret_adapter.validate_python(document)


def dump_secret(secret: Secret) -> dict:
    return secret.model_dump(mode="json")


__all__ = [
    "Secret",
    "PasswordSecret",
    "CreditCardSecret",
    "parse_secret",
    "load_secret",
    "dump_secret",
]
