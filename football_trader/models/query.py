"""Input documents for the track command.

Both are small JSON files supplied on the command line. Unlike the price
store, a missing or invalid file here is fatal.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class ConfigFileError(Exception):
    """Raised when a query or login file cannot be read or validated."""

    pass


class MarketQuery(BaseModel):
    """Leagues to track and the fixture date window relative to now."""

    model_config = ConfigDict(populate_by_name=True)

    league_ids: list[str] = Field(default_factory=list, alias="leagueids")
    min_days: int = Field(default=0, alias="mindays")
    max_days: int = Field(default=0, alias="maxdays")
    # Reserved for odds filtering, not applied when synchronizing
    min_odds: float = Field(default=0.0, alias="minodds")
    max_odds: float = Field(default=0.0, alias="maxodds")

    @classmethod
    def from_file(cls, path: str | Path) -> "MarketQuery":
        return _read_model(cls, path)


class LoginDetails(BaseModel):
    """Certificate login credentials for the Betfair identity service."""

    model_config = ConfigDict(populate_by_name=True)

    root_ca_path: str = Field(default="", alias="rootcapath")
    cert_path: str = Field(alias="certpath")
    key_path: str = Field(alias="keypath")
    user: str
    password: str

    @classmethod
    def from_file(cls, path: str | Path) -> "LoginDetails":
        return _read_model(cls, path)


def _read_model(model: type[BaseModel], path: str | Path):
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(f"Unable to read {path}: {e}") from e
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigFileError(f"Invalid {model.__name__} in {path}: {e}") from e
