"""Bidirectional conversion tables between canonical and native field types."""

from collections.abc import Hashable, Mapping
from types import MappingProxyType
from typing import Any, ClassVar, Generic, TypeVar

from datamigrator.errors import UnsupportedFieldType, UnsupportedNativeType
from datamigrator.models.field_type import FieldType

N = TypeVar("N", bound=Hashable)

_TABLE_NAMES = ("TO_NATIVE", "TO_CANONICAL", "FOLDED", "DDL_NAMES", "DDL_ALIASES")


class FieldTypeConverter(Generic[N]):
    """Static lookup tables for one provider's native type system.

    Subclasses declare the tables as class attributes; they are frozen into
    read-only mappings when the subclass is created and shared process-wide.

    - ``TO_NATIVE``: the single native default for each supported FieldType.
    - ``TO_CANONICAL``: every native type the provider can report, possibly
      many-to-one.
    - ``FOLDED``: FieldTypes whose round trip lands on a different FieldType,
      with the type they come back as. Every lossy round trip must be listed.
    - ``UNSUPPORTED``: FieldTypes with no native representation.
    - ``DDL_NAMES`` / ``DDL_ALIASES``: native type keywords for providers that
      create schemas. Reverse lookups keep the first native type declared for a
      keyword.
    """

    PROVIDER_NAME: ClassVar[str] = ""
    TO_NATIVE: ClassVar[Mapping[FieldType, Any]] = {}
    TO_CANONICAL: ClassVar[Mapping[Any, FieldType]] = {}
    FOLDED: ClassVar[Mapping[FieldType, FieldType]] = {}
    UNSUPPORTED: ClassVar[frozenset[FieldType]] = frozenset()
    DDL_NAMES: ClassVar[Mapping[Any, str]] = {}
    DDL_ALIASES: ClassVar[Mapping[str, Any]] = {}

    _DDL_LOOKUP: ClassVar[Mapping[str, Any]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for name in _TABLE_NAMES:
            setattr(cls, name, MappingProxyType(dict(getattr(cls, name))))
        cls.UNSUPPORTED = frozenset(cls.UNSUPPORTED)

        lookup: dict[str, Any] = {}
        for native, keyword in cls.DDL_NAMES.items():
            lookup.setdefault(keyword.upper(), native)
        for keyword, native in cls.DDL_ALIASES.items():
            lookup[keyword.upper()] = native
        cls._DDL_LOOKUP = MappingProxyType(lookup)

    @property
    def is_ddl_capable(self) -> bool:
        """True when the provider renders DDL keywords."""
        return bool(self.DDL_NAMES)

    def supports(self, field_type: FieldType) -> bool:
        """True when ``field_type`` has a native representation."""
        return field_type in self.TO_NATIVE

    def to_canonical(self, native: N) -> FieldType:
        """Map a native type to its canonical FieldType."""
        try:
            return self.TO_CANONICAL[native]
        except (KeyError, TypeError):
            raise UnsupportedNativeType(native, self.PROVIDER_NAME) from None

    def to_native(self, field_type: FieldType) -> N:
        """Map a canonical FieldType to the provider's native default."""
        try:
            return self.TO_NATIVE[field_type]
        except KeyError:
            raise UnsupportedFieldType(field_type, self.PROVIDER_NAME) from None

    def to_ddl_string(self, native: N) -> str:
        """Render the DDL keyword for a native type."""
        try:
            return self.DDL_NAMES[native]
        except (KeyError, TypeError):
            raise UnsupportedNativeType(native, self.PROVIDER_NAME) from None

    def from_ddl_string(self, keyword: str) -> N:
        """Parse a DDL keyword such as ``"varchar"`` back to a native type."""
        base = keyword.split("(")[0].strip().upper()
        try:
            return self._DDL_LOOKUP[base]
        except KeyError:
            raise UnsupportedNativeType(keyword, self.PROVIDER_NAME) from None

    def round_trip(self, field_type: FieldType) -> FieldType:
        """Canonical type a value of ``field_type`` comes back as."""
        return self.to_canonical(self.to_native(field_type))

    def self_check(self) -> list[str]:
        """Return every inconsistency in the tables; empty when well formed."""
        problems: list[str] = []
        for field_type in FieldType:
            if field_type in self.UNSUPPORTED:
                if field_type in self.TO_NATIVE:
                    problems.append(f"{field_type.value} is both mapped and unsupported")
                continue
            if field_type not in self.TO_NATIVE:
                problems.append(f"{field_type.value} has no native type and is not declared unsupported")
                continue

            native = self.TO_NATIVE[field_type]
            if native not in self.TO_CANONICAL:
                problems.append(f"{field_type.value} maps to {native!r} which has no canonical type")
                continue

            expected = self.FOLDED.get(field_type, field_type)
            actual = self.TO_CANONICAL[native]
            if actual != expected:
                problems.append(
                    f"{field_type.value} round-trips to {actual.value}, expected {expected.value}"
                )

        for folded, target in self.FOLDED.items():
            if folded == target:
                problems.append(f"{folded.value} is folded onto itself")

        if self.is_ddl_capable:
            for native in self.TO_CANONICAL:
                if native not in self.DDL_NAMES:
                    problems.append(f"{native!r} has no DDL keyword")

        return problems
