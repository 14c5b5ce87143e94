"""Static definitions of the planner's data models.

Each model lists its fields, its relationships to other models and the
authorization rule that guards it. `input_model` turns a definition into a
pydantic model used to validate create requests.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, create_model, model_validator
from pydantic.alias_generators import to_camel

from .errors import UnknownModel


class AuthRule(str, Enum):
    GUEST = "guest"  # anyone, signed in or not
    OWNER = "owner"  # only the caller who created the record


class RelationKind(str, Enum):
    HAS_MANY = "has_many"
    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"


@dataclass(frozen=True)
class FieldDef:
    name: str
    kind: str = "string"  # id | string | integer | boolean | enum
    required: bool = False
    is_list: bool = False
    choices: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Relation:
    """
    Link to another model.

    key is the foreign-key field: declared on this model for BELONGS_TO,
    on the target model for HAS_MANY and HAS_ONE.
    """

    name: str
    kind: RelationKind
    target: str
    key: str


@dataclass(frozen=True)
class ModelDef:
    name: str
    fields: Tuple[FieldDef, ...]
    relations: Tuple[Relation, ...] = ()
    auth: AuthRule = AuthRule.GUEST

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    @property
    def has_declared_id(self) -> bool:
        return "id" in self.field_names()

    def relation(self, name: str) -> Optional[Relation]:
        """Find a relation by its snake_case or camelCase name."""
        for rel in self.relations:
            if name in (rel.name, to_camel(rel.name)):
                return rel
        return None


def _id(name: str = "id", required: bool = False) -> FieldDef:
    return FieldDef(name, "id", required=required)


def _has_many(name: str, target: str, key: str) -> Relation:
    return Relation(name, RelationKind.HAS_MANY, target, key)


def _belongs_to(name: str, target: str, key: str) -> Relation:
    return Relation(name, RelationKind.BELONGS_TO, target, key)


def _has_one(name: str, target: str, key: str) -> Relation:
    return Relation(name, RelationKind.HAS_ONE, target, key)


STATE_CODES = ("CO", "CT", "NY")
UNIVERSITY_CODES = (
    "COMMUNITY_COLLEGE_OF_AURORA",
    "UNIVERSITY_OF_CONNECTICUT",
    "DENVER_UNIVERSTITY",
    "UNIVERSITY_OF_BRIDGEPORT",
    "UNIVERSITY_OF_COLORADO",
)

_MODELS: Tuple[ModelDef, ...] = (
    ModelDef(
        "Todo",
        (FieldDef("title", required=True), FieldDef("content")),
        auth=AuthRule.OWNER,
    ),
    ModelDef(
        "CourseV2",
        (
            _id(required=True),
            FieldDef("sub_category", required=True),
            FieldDef("institution"),
            FieldDef("title"),
            FieldDef("credits", "integer"),
            FieldDef("prerequisites", is_list=True),
            FieldDef("corequisites", is_list=True),
            FieldDef("includes_lab", "boolean"),
            FieldDef("notes"),
        ),
    ),
    ModelDef(
        "State",
        (_id(required=True), FieldDef("name", "enum", choices=STATE_CODES), FieldDef("display_name")),
        (_has_many("universities", "University", "state_id"),),
    ),
    ModelDef(
        "University",
        (
            _id(required=True),
            FieldDef("name", "enum", choices=UNIVERSITY_CODES),
            FieldDef("display_name"),
            _id("state_id"),
        ),
        (
            _belongs_to("state", "State", "state_id"),
            _has_many("majors", "MajorUniversity", "university_id"),
            _has_many("categories", "Category", "university_id"),
            _has_many("students", "Student", "university_id"),
        ),
    ),
    ModelDef(
        "Major",
        (_id(required=True), FieldDef("name"), FieldDef("min_credit")),
        (
            _has_many("categories", "Category", "major_id"),
            _has_many("universities", "MajorUniversity", "major_id"),
            _has_one("student", "Student", "major_id"),
        ),
    ),
    ModelDef(
        "Category",
        (
            _id(required=True),
            FieldDef("min_credit", "integer"),
            FieldDef("name"),
            _id("major_id"),
            _id("university_id"),
        ),
        (
            _belongs_to("major", "Major", "major_id"),
            _belongs_to("university", "University", "university_id"),
            _has_many("sub_categories", "SubCategory", "category_id"),
            _has_many("courses", "Course", "category_id"),
        ),
    ),
    ModelDef(
        "SubCategory",
        (_id(required=True), FieldDef("name"), FieldDef("code"), _id("category_id")),
        (
            _belongs_to("category", "Category", "category_id"),
            _has_many("courses", "Course", "sub_category_id"),
        ),
    ),
    ModelDef(
        "Course",
        (
            _id(required=True),
            FieldDef("code"),
            FieldDef("name"),
            FieldDef("credit", "integer"),
            _id("category_id"),
            _id("sub_category_id"),
        ),
        (
            _belongs_to("category", "Category", "category_id"),
            _belongs_to("sub_category", "SubCategory", "sub_category_id"),
            _has_many("user_selected_courses", "UserSelectedCourse", "course_id"),
        ),
    ),
    ModelDef(
        "Student",
        (
            _id(required=True),
            FieldDef("first_name"),
            FieldDef("last_name"),
            _id("university_id"),
            _id("major_id"),
        ),
        (
            _belongs_to("university", "University", "university_id"),
            _belongs_to("major", "Major", "major_id"),
        ),
        auth=AuthRule.OWNER,
    ),
    ModelDef(
        "MajorUniversity",
        (_id("major_id", required=True), _id("university_id", required=True)),
        (
            _belongs_to("major", "Major", "major_id"),
            _belongs_to("university", "University", "university_id"),
        ),
    ),
    ModelDef(
        "UserSelectedCourse",
        (_id(required=True), _id("user_id"), FieldDef("completed", "boolean"), _id("course_id")),
        (_belongs_to("course", "Course", "course_id"),),
        auth=AuthRule.OWNER,
    ),
)

SCHEMA: Dict[str, ModelDef] = {m.name: m for m in _MODELS}

# Fields the server stamps on every record; callers cannot set them.
SYSTEM_FIELDS = ("owner", "created_at", "updated_at")


# PUBLIC_INTERFACE
def get_model(name: str) -> ModelDef:
    """Return the model definition by name, raising UnknownModel if absent."""
    try:
        return SCHEMA[name]
    except KeyError:
        raise UnknownModel(name) from None


# PUBLIC_INTERFACE
def validate_schema(schema: Dict[str, ModelDef]) -> None:
    """
    Check that every relation points at a defined model and that its key
    field is declared on the model that holds it.

    Raises:
        ValueError describing the first inconsistency found.
    """
    for model in schema.values():
        names = model.field_names()
        if len(set(names)) != len(names):
            raise ValueError(f"{model.name}: duplicate field names")
        for reserved in SYSTEM_FIELDS:
            if reserved in names:
                raise ValueError(f"{model.name}: '{reserved}' is a system field")
        for rel in model.relations:
            target = schema.get(rel.target)
            if target is None:
                raise ValueError(f"{model.name}.{rel.name}: unknown target model {rel.target}")
            holder = model if rel.kind is RelationKind.BELONGS_TO else target
            if rel.key not in holder.field_names():
                raise ValueError(f"{model.name}.{rel.name}: {holder.name} has no field {rel.key}")


def _python_type(f: FieldDef) -> Any:
    if f.kind == "integer":
        base: Any = int
    elif f.kind == "boolean":
        base = bool
    elif f.kind == "enum":
        base = Literal[f.choices]  # type: ignore[valid-type]
    else:
        base = str
    return List[base] if f.is_list else base  # type: ignore[valid-type]


class _RecordInput(BaseModel):
    """Base for generated input models."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def blank_strings_to_none(cls, data: Any) -> Any:
        """
        Store empty or whitespace-only strings as an explicit null.
        """
        if not isinstance(data, dict):
            return data
        return {
            key: None if isinstance(value, str) and value.strip() == "" else value
            for key, value in data.items()
        }


# PUBLIC_INTERFACE
@lru_cache(maxsize=None)
def input_model(model: ModelDef) -> Type[BaseModel]:
    """
    Build (once per model) a pydantic model validating create payloads.

    Accepts camelCase or snake_case keys; unknown keys are rejected. Blank
    strings become None, so a required string field rejects them.
    """
    field_specs: Dict[str, Any] = {}
    for f in model.fields:
        annotation = _python_type(f)
        if f.required:
            field_specs[f.name] = (annotation, ...)
        else:
            field_specs[f.name] = (Optional[annotation], None)
    return create_model(  # type: ignore[call-overload]
        f"{model.name}Input",
        __base__=_RecordInput,
        **field_specs,
    )


def describe_schema() -> List[Dict[str, Any]]:
    return [
        {
            "name": m.name,
            "auth": m.auth.value,
            "fields": [to_camel(n) for n in m.field_names()],
            "relations": [
                {"name": to_camel(r.name), "kind": r.kind.value, "target": r.target}
                for r in m.relations
            ],
        }
        for m in SCHEMA.values()
    ]


validate_schema(SCHEMA)
