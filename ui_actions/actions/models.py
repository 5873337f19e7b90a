"""Action definition models.

An action document is a JSON object tagged by an optional ``type``. Each
dispatch kind has its own model; :func:`parse_action` picks the variant.
Keys are accepted in camelCase (``confirmText``) or snake_case.
"""

from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..errors import InvalidActionError


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )


class ConfirmSpec(_Model):
    """Structured confirmation prompt."""

    message: str
    title: Optional[str] = None
    confirm_text: Optional[str] = None
    cancel_text: Optional[str] = None


class ToastSpec(_Model):
    """Toast feedback switches."""

    show_on_success: Optional[bool] = None
    show_on_error: Optional[bool] = None
    duration: Optional[int] = Field(default=None, ge=0, description="Duration in milliseconds")


class NavigateSpec(_Model):
    """Navigation target."""

    to: Optional[str] = None
    replace: bool = False


class ApiSpec(_Model):
    """Full API request description."""

    url: Optional[str] = None
    method: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None
    query_params: Dict[str, Any] = Field(default_factory=dict)
    timeout: Optional[float] = Field(default=None, gt=0)


class ActionDef(_Model):
    """Fields common to every action variant."""

    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None

    # Catalog metadata
    name: Optional[str] = None
    label: Optional[str] = None
    locations: List[str] = Field(default_factory=list)
    bulk_enabled: bool = False
    shortcut: Optional[str] = None
    priority: int = 0

    # Guards
    condition: Optional[str] = None
    disabled: Union[bool, str, None] = None

    # Confirmation
    confirm_text: Optional[str] = None
    confirm: Optional[ConfirmSpec] = None

    # Composition
    chain: List["ActionDef"] = Field(default_factory=list)
    chain_mode: Literal["sequential", "parallel"] = "sequential"
    on_success: List["ActionDef"] = Field(default_factory=list)
    on_failure: List["ActionDef"] = Field(default_factory=list)

    # Feedback
    success_message: Optional[str] = None
    error_message: Optional[str] = None
    toast: Optional[ToastSpec] = None
    refresh_after: bool = False

    target: Any = None
    params: Any = None

    @field_validator("chain", "on_success", "on_failure", mode="before")
    @classmethod
    def _parse_nested(cls, value: Any) -> List["ActionDef"]:
        if value is None:
            return []
        if isinstance(value, (Mapping, ActionDef)):
            value = [value]
        return [parse_action(item) for item in value]

    @property
    def kind(self) -> str:
        """Dispatch key used in logs and metrics."""
        return self.type or "legacy"

    def get_extra(self, key: str, default: Any = None) -> Any:
        """Return an extra (unmodelled) field preserved from the document."""
        return (self.model_extra or {}).get(key, default)


class ScriptAction(ActionDef):
    type: Literal["script"] = "script"
    execute: Optional[str] = None


class UrlAction(ActionDef):
    type: Literal["url"] = "url"


class NavigationAction(ActionDef):
    type: Literal["navigation"] = "navigation"
    navigate: Optional[NavigateSpec] = None


class ModalAction(ActionDef):
    type: Literal["modal"] = "modal"
    modal: Any = None


class ApiAction(ActionDef):
    type: Literal["api"] = "api"
    api: Union[str, ApiSpec, None] = None
    endpoint: Optional[str] = None
    method: Optional[str] = None


class FlowAction(ActionDef):
    type: Literal["flow"] = "flow"


class CustomAction(ActionDef):
    """Any type resolved only through the handler registry."""

    type: str


class LegacyAction(ActionDef):
    """Untyped action driven by an onClick callback."""

    type: None = None
    on_click: Optional[Callable[..., Any]] = None


ACTION_TYPES: Dict[str, Type[ActionDef]] = {
    "script": ScriptAction,
    "url": UrlAction,
    "navigation": NavigationAction,
    "modal": ModalAction,
    "api": ApiAction,
    "flow": FlowAction,
}


def parse_action(value: Any) -> ActionDef:
    """Build the ActionDef variant matching a document's ``type``.

    Args:
        value: An ActionDef instance or a mapping

    Returns:
        Parsed action definition

    Raises:
        InvalidActionError: If the document does not validate
    """
    if isinstance(value, ActionDef):
        return value
    if not isinstance(value, Mapping):
        raise InvalidActionError(
            f"Action must be a mapping, got {type(value).__name__}"
        )

    action_type = value.get("type")
    if action_type is None:
        model: Type[ActionDef] = LegacyAction
    elif not isinstance(action_type, str):
        raise InvalidActionError(
            f"Invalid action definition: type: expected a string, got {type(action_type).__name__}"
        )
    else:
        model = ACTION_TYPES.get(action_type, CustomAction)

    try:
        return model.model_validate(value)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidActionError(f"Invalid action definition: {errors}") from e


ActionDef.model_rebuild()
