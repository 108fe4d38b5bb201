from __future__ import annotations

import re
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _validate_env_var_name(value: str) -> str:
    name = (value or "").strip()
    if not _ENV_NAME_RE.fullmatch(name):
        raise ValueError("must be a valid environment variable name")
    return name


def _strip_base_url(value: str) -> str:
    url = (value or "").strip().rstrip("/")
    if not url.startswith(("http://", "https://")):
        raise ValueError("must be an http(s) URL")
    return url


PositiveInt = Annotated[int, Field(ge=1)]
PositiveFloat = Annotated[float, Field(gt=0)]

ProviderName = Literal["apify", "zyte", "brightdata", "offline"]


class ApifyConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    token_env: str = "APIFY_TOKEN"
    actor: str = "apify/instagram-scraper"
    results_type: Literal["posts"] = "posts"

    @field_validator("token_env")
    @classmethod
    def _token_env_must_be_valid(cls, v: str) -> str:
        return _validate_env_var_name(v)


class ZyteConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    api_key_env: str = "ZYTE_API_KEY"
    base_url: str = "https://api.zyte.com/v1"
    auto_extract: bool = True
    browser_html: bool = True

    @field_validator("api_key_env")
    @classmethod
    def _api_key_env_must_be_valid(cls, v: str) -> str:
        return _validate_env_var_name(v)

    @field_validator("base_url")
    @classmethod
    def _base_url_must_be_http(cls, v: str) -> str:
        return _strip_base_url(v)

    @model_validator(mode="after")
    def _must_request_something(self) -> "ZyteConfig":
        if not (self.auto_extract or self.browser_html):
            raise ValueError("at least one of auto_extract or browser_html must be enabled")
        return self


class BrightDataConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    token_env: str = "BRIGHTDATA_API_TOKEN"
    dataset_id: str = "gd_lk5ns7kz21pck8jpis"
    base_url: str = "https://api.brightdata.com/datasets/v3"

    @field_validator("token_env")
    @classmethod
    def _token_env_must_be_valid(cls, v: str) -> str:
        return _validate_env_var_name(v)

    @field_validator("base_url")
    @classmethod
    def _base_url_must_be_http(cls, v: str) -> str:
        return _strip_base_url(v)


class FetchConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    poll_interval_seconds: PositiveFloat = 5.0
    poll_budget_seconds: PositiveFloat = 300.0
    request_timeout_seconds: PositiveFloat = 30.0
    retrieve_timeout_seconds: PositiveFloat = 45.0
    submit_retry_attempts: PositiveInt = 2
    default_limit: PositiveInt = 10
    max_limit: PositiveInt = 50
    max_handle_length: PositiveInt = 30

    @field_validator("submit_retry_attempts")
    @classmethod
    def _at_most_one_retry(cls, v: int) -> int:
        if v > 2:
            raise ValueError("submission is retried at most once (max 2 attempts)")
        return v

    @model_validator(mode="after")
    def _timeouts_must_nest(self) -> "FetchConfig":
        if self.request_timeout_seconds >= self.poll_budget_seconds:
            raise ValueError("request_timeout_seconds must be < poll_budget_seconds")
        if self.retrieve_timeout_seconds >= self.poll_budget_seconds:
            raise ValueError("retrieve_timeout_seconds must be < poll_budget_seconds")
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit must be <= max_limit")
        return self


class CacheConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    ttl_seconds: PositiveFloat = 900.0


class RateLimitConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    capacity: PositiveInt = 100
    window_seconds: PositiveFloat = 3600.0


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    provider: ProviderName = "apify"
    apify: ApifyConfig = Field(default_factory=ApifyConfig)
    zyte: ZyteConfig = Field(default_factory=ZyteConfig)
    brightdata: BrightDataConfig = Field(default_factory=BrightDataConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
