import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Iterable

from .types import (
    ALL_COMPARATORS,
    ALLOWED_COMPARATORS,
    CUSTOM_FIELD_PREFIX,
    Comparator,
    CustomFieldType,
    StorageKind,
)

RANKS = (
    "Gen Ex",
    "Gen Div",
    "Gen Brig",
    "Cel",
    "Ten Cel",
    "Maj",
    "Cap",
    "1º Ten",
    "2º Ten",
    "Asp Of",
    "Cadete",
    "S Ten",
    "1º Sgt",
    "2º Sgt",
    "3º Sgt",
    "Taifeiro",
    "Cb EP",
    "Cb EV",
    "Cb",
    "Sd EP",
    "Sd EV",
    "Sd 1ª Cl",
    "Sd 2ª Cl",
)

COMPANIES = ("1ª CIA", "2ª CIA", "3ª CIA", "CEF", "CCAP", "B ADM", "EM", "SEDE")

STATUSES = (
    "Pronto",
    "Férias",
    "Licença",
    "Transferido",
    "Destacado",
    "À Disposição",
    "Apto recom.",
    "Preso Disp Jus",
    "Instalação",
    "Desc Férias",
    "CHQAO",
    "Reint. Jud.",
    "Waikas",
)

MISSIONS = ("FORPRON", "SEDE", "PEF", "Administrativa")

TEMP_MARKERS = ("SIM", "NÃO")

CUSTOM_FIELDS_DOCUMENT_FIELD = "custom_fields"

# Custom field names become document paths, so dots and a leading "$" are out.
_CUSTOM_FIELD_NAME_RE = re.compile(r"^[^.$\x00][^.\x00]*$")


def is_valid_custom_field_name(name: Any) -> bool:
    return isinstance(name, str) and bool(_CUSTOM_FIELD_NAME_RE.match(name))


@dataclass(frozen=True)
class StandardField:
    """A fixed, schema-known attribute of a personnel record.

    :param token: Name used in filter trees and by the API
    :param database_field: Backing MongoDB document field
    :param kind: Storage kind, decides which comparators are legal
    :param label: Human-friendly label for the filter builder
    :param options: Known values for enumerated fields
    """

    token: str
    database_field: str
    kind: StorageKind
    label: str
    options: tuple[str, ...] = ()

    @property
    def is_custom(self) -> bool:
        return False

    @property
    def allowed_comparators(self) -> frozenset[Comparator]:
        return ALLOWED_COMPARATORS[self.kind]

    def to_json(self) -> dict[str, Any]:
        return {
            "field": self.token,
            "label": self.label,
            "kind": self.kind.value,
            "custom": False,
            "comparators": [c.value for c in Comparator if c in self.allowed_comparators],
            "options": list(self.options),
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CustomFieldDefinition:
    """A user-defined attribute stored in the record's ``custom_fields`` sub-document.

    ``name`` is the storage key embedded in every record and never changes
    after creation.
    """

    field_id: str
    name: str
    label: str
    field_type: CustomFieldType
    options: list[str] = field(default_factory=list)
    required: bool = False
    order_index: int = 0
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def is_custom(self) -> bool:
        return True

    @property
    def token(self) -> str:
        return CUSTOM_FIELD_PREFIX + self.name

    @property
    def database_field(self) -> str:
        return f"{CUSTOM_FIELDS_DOCUMENT_FIELD}.{self.name}"

    @property
    def allowed_comparators(self) -> frozenset[Comparator]:
        return ALL_COMPARATORS

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the MongoDB document form."""
        return {
            "field_id": self.field_id,
            "name": self.name,
            "label": self.label,
            "field_type": self.field_type.value,
            "options": list(self.options),
            "required": self.required,
            "order_index": self.order_index,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.field_id,
            "field": self.token,
            "name": self.name,
            "label": self.label,
            "fieldType": self.field_type.value,
            "options": list(self.options),
            "required": self.required,
            "orderIndex": self.order_index,
            "custom": True,
            "comparators": [c.value for c in Comparator],
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CustomFieldDefinition":
        return cls(
            field_id=data["field_id"],
            name=data["name"],
            label=data.get("label") or data["name"],
            field_type=CustomFieldType(data["field_type"]),
            options=list(data.get("options") or []),
            required=bool(data.get("required", False)),
            order_index=int(data.get("order_index", 0)),
            created_at=data.get("created_at") or _now(),
            updated_at=data.get("updated_at") or _now(),
        )


ResolvedField = StandardField | CustomFieldDefinition


class StandardFieldRegistry:
    """Registry of the standard (fixed) filterable personnel fields."""

    _fields: ClassVar[dict[str, StandardField]] = {
        f.token: f
        for f in (
            StandardField("postoGraduacao", "posto_graduacao", StorageKind.ENUM, "Posto/Graduação", RANKS),
            StandardField("companhia", "companhia", StorageKind.ENUM, "Companhia", COMPANIES),
            StandardField("secaoFracao", "secao_fracao", StorageKind.STRING, "Seção/Fração"),
            StandardField("situacao", "situacao", StorageKind.ENUM, "Situação", STATUSES),
            StandardField("missaoOp", "missao_op", StorageKind.ENUM, "Missão/Operação", MISSIONS),
            StandardField("nomeCompleto", "nome_completo", StorageKind.STRING, "Nome completo"),
            StandardField("nomeGuerra", "nome_guerra", StorageKind.STRING, "Nome de guerra"),
            StandardField("funcao", "funcao", StorageKind.STRING, "Função"),
            StandardField("armaQuadroServico", "arma_quadro_servico", StorageKind.STRING, "Arma/Quadro/Serviço"),
            StandardField("cpf", "cpf", StorageKind.STRING, "CPF"),
            StandardField("identidade", "identidade", StorageKind.STRING, "Identidade"),
            StandardField("telefone", "telefone_contato_1", StorageKind.STRING, "Telefone"),
            StandardField("email", "email", StorageKind.STRING, "E-mail"),
            StandardField("ord", "ord", StorageKind.INTEGER, "Ordem"),
            StandardField("temp", "temp", StorageKind.ENUM, "Temporário", TEMP_MARKERS),
        )
    }

    @classmethod
    def get_all_fields(cls) -> dict[str, StandardField]:
        return cls._fields

    @classmethod
    def get_field(cls, token: str) -> StandardField | None:
        return cls._fields.get(token)


class FieldRegistry:
    """Snapshot of every filterable field: the standard ones plus the custom
    field definitions that existed when the snapshot was taken.

    Resolution is exact and case-sensitive. A token is either a standard field
    name or ``customFields.<name>`` where ``<name>`` is a known definition.
    """

    def __init__(self, custom_fields: Iterable[CustomFieldDefinition] = ()):
        self._custom: dict[str, CustomFieldDefinition] = {d.name: d for d in custom_fields}

    @classmethod
    def from_database(cls, db) -> "FieldRegistry":
        from ..custom_fields.repository import CustomFieldRepository

        return cls(CustomFieldRepository(db).list_all())

    @property
    def custom_fields(self) -> list[CustomFieldDefinition]:
        return list(self._custom.values())

    def resolve(self, token: Any) -> ResolvedField | None:
        if not isinstance(token, str):
            return None
        if token.startswith(CUSTOM_FIELD_PREFIX):
            name = token[len(CUSTOM_FIELD_PREFIX) :]
            if not is_valid_custom_field_name(name):
                return None
            return self._custom.get(name)
        return StandardFieldRegistry.get_field(token)

    def catalogue(self) -> list[dict[str, Any]]:
        """Describe every field for the filter builder UI."""
        standard = [f.to_json() for f in StandardFieldRegistry.get_all_fields().values()]
        custom = [d.to_json() for d in sorted(self._custom.values(), key=lambda d: (d.order_index, d.name))]
        return standard + custom
