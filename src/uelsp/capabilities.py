"""
Versioned capability model.

A static knowledge base of Unreal Engine API symbols (class → methods), macro
templates and engine include paths, grouped into *buckets* keyed by
``"major.minor"``.  Buckets cascade: each newer bucket starts as a copy of the
previous one and is extended, so a symbol never disappears when moving
forward.

The model is built once and never mutated afterwards, so it can be shared
between the request loop and the background header scanner without locking.
Tests construct it with smaller fixture tables.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from uelsp.version import EngineVersion

CURRENT_MAJOR = 5

# Macros offered for completion even when a bucket does not define them.
KNOWN_MACROS = ('UCLASS', 'USTRUCT', 'UFUNCTION', 'UPROPERTY', 'UENUM')

_CORE_INCLUDES = (
    'Engine/Source/Runtime/Core/Public',
    'Engine/Source/Runtime/CoreUObject/Public',
    'Engine/Source/Runtime/Engine/Public',
)
_ENGINE_CLASSES_INCLUDE = 'Engine/Source/Runtime/Engine/Classes'
_UMG_INCLUDE = 'Engine/Source/Runtime/UMG/Public'
# First 5.x minor whose default include list gains the UMG headers.
_UMG_MINOR = 2


@dataclass(frozen=True)
class CapabilityBucket:
    """Everything known about one version bucket."""
    classes: Mapping[str, tuple[str, ...]]
    macros: Mapping[str, str]
    include_paths: tuple[str, ...]

    def extend(
        self,
        classes: Mapping[str, tuple[str, ...]] | None = None,
        macros: Mapping[str, str] | None = None,
        include_paths: tuple[str, ...] = (),
    ) -> CapabilityBucket:
        """Return a new bucket holding this one's content plus the additions.

        Methods and include paths are appended in order; entries already
        present are kept where they are.
        """
        merged_classes = {name: tuple(methods) for name, methods in self.classes.items()}
        for name, methods in (classes or {}).items():
            current = merged_classes.get(name, ())
            merged_classes[name] = current + tuple(m for m in methods if m not in current)
        merged_macros = dict(self.macros)
        merged_macros.update(macros or {})
        merged_paths = self.include_paths + tuple(
            p for p in include_paths if p not in self.include_paths
        )
        return make_bucket(merged_classes, merged_macros, merged_paths)


def make_bucket(
    classes: Mapping[str, tuple[str, ...] | list[str]],
    macros: Mapping[str, str],
    include_paths: tuple[str, ...] | list[str],
) -> CapabilityBucket:
    """Build a read-only :class:`CapabilityBucket`."""
    return CapabilityBucket(
        classes=MappingProxyType({k: tuple(v) for k, v in classes.items()}),
        macros=MappingProxyType(dict(macros)),
        include_paths=tuple(include_paths),
    )


def _parse_key(key: str) -> tuple[int, int]:
    major, _, minor = key.partition('.')
    return int(major), int(minor or 0)


# ---------------------------------------------------------------------------
# Built-in tables
# ---------------------------------------------------------------------------

_UCLASS_LEGACY = (
    'UCLASS(BlueprintType, Blueprintable)\n'
    'class GAME_API AClassName : public AActor\n'
    '{\n'
    '\tGENERATED_UCLASS_BODY()\n'
    '\n'
    'public:\n'
    '\tvirtual void BeginPlay() override;\n'
    '\tvirtual void Tick(float DeltaTime) override;\n'
    '};'
)
_UCLASS_MODERN = (
    'UCLASS(BlueprintType, Blueprintable)\n'
    'class GAME_API AClassName : public AActor\n'
    '{\n'
    '\tGENERATED_BODY()\n'
    '\n'
    'public:\n'
    '\tAClassName();\n'
    '\n'
    'protected:\n'
    '\tvirtual void BeginPlay() override;\n'
    '\n'
    'public:\n'
    '\tvirtual void Tick(float DeltaTime) override;\n'
    '};'
)
_UFUNCTION = 'UFUNCTION(BlueprintCallable, Category = "Gameplay")\nvoid FunctionName();'
_UENUM = (
    'UENUM(BlueprintType)\n'
    'enum class EEnumName : uint8\n'
    '{\n'
    '\tNone UMETA(DisplayName = "None"),\n'
    '\tFirst UMETA(DisplayName = "First"),\n'
    '\tSecond UMETA(DisplayName = "Second")\n'
    '};'
)


def default_buckets() -> dict[str, CapabilityBucket]:
    """Return the built-in cascade 4.27, 5.0, 5.1 ... 5.5."""
    buckets: dict[str, CapabilityBucket] = {}

    buckets['4.27'] = make_bucket(
        classes={
            'AActor': ['BeginPlay', 'EndPlay', 'Tick', 'GetActorLocation', 'SetActorLocation',
                       'GetWorld', 'Destroy', 'GetComponents', 'GetRootComponent'],
            'APawn': ['PossessedBy', 'UnPossessed', 'GetController', 'SetupPlayerInputComponent',
                      'GetMovementComponent', 'AddMovementInput', 'AddControllerYawInput'],
            'ACharacter': ['Jump', 'StopJumping', 'CanJump', 'GetCharacterMovement',
                           'LaunchCharacter'],
            'UObject': ['GetName', 'GetClass', 'IsA', 'GetOuter', 'GetWorld',
                        'ConditionalBeginDestroy'],
            'UActorComponent': ['BeginPlay', 'EndPlay', 'TickComponent', 'Activate',
                                'Deactivate', 'IsActive'],
        },
        macros={
            'UCLASS': _UCLASS_LEGACY,
            'USTRUCT': ('USTRUCT(BlueprintType)\nstruct FStructName\n{\n'
                        '\tGENERATED_USTRUCT_BODY()\n\n'
                        '\tUPROPERTY(EditAnywhere, BlueprintReadWrite)\n\tint32 Value;\n};'),
            'UFUNCTION': _UFUNCTION,
            'UPROPERTY': ('UPROPERTY(EditAnywhere, BlueprintReadWrite, Category = "Properties")\n'
                          'float PropertyName;'),
        },
        include_paths=_CORE_INCLUDES,
    )

    buckets['5.0'] = make_bucket(
        classes={
            'AActor': ['BeginPlay', 'EndPlay', 'Tick', 'GetActorLocation', 'SetActorLocation',
                       'GetWorld', 'GetActorTransform', 'SetActorTransform', 'Destroy',
                       'GetComponents', 'GetRootComponent', 'FindComponentByClass'],
            'APawn': ['PossessedBy', 'UnPossessed', 'GetController', 'SetupPlayerInputComponent',
                      'AddMovementInput', 'GetMovementComponent', 'AddControllerYawInput',
                      'AddControllerPitchInput'],
            'ACharacter': ['Jump', 'StopJumping', 'CanJump', 'GetCharacterMovement',
                           'LaunchCharacter', 'Crouch', 'UnCrouch', 'CanCrouch'],
            'UObject': ['GetName', 'GetClass', 'IsA', 'GetOuter', 'GetWorld', 'GetTypedOuter',
                        'ConditionalBeginDestroy', 'MarkAsGarbage'],
            'UActorComponent': ['BeginPlay', 'EndPlay', 'TickComponent', 'Activate',
                                'Deactivate', 'IsActive', 'RegisterComponent',
                                'UnregisterComponent'],
        },
        macros={
            'UCLASS': _UCLASS_MODERN,
            'USTRUCT': ('USTRUCT(BlueprintType)\nstruct FStructName\n{\n'
                        '\tGENERATED_BODY()\n\n'
                        '\tUPROPERTY(EditAnywhere, BlueprintReadWrite)\n\tint32 Value = 0;\n};'),
            'UFUNCTION': _UFUNCTION,
            'UPROPERTY': ('UPROPERTY(EditAnywhere, BlueprintReadWrite, Category = "Properties")\n'
                          'float PropertyName = 0.0f;'),
            'UENUM': _UENUM,
        },
        include_paths=_CORE_INCLUDES + (_ENGINE_CLASSES_INCLUDE,),
    )

    buckets['5.1'] = buckets['5.0'].extend(
        classes={'AActor': ('GetActorNameOrLabel', 'SetActorLabel')},
    )
    buckets['5.2'] = buckets['5.1'].extend(include_paths=(_UMG_INCLUDE,))
    buckets['5.3'] = buckets['5.2'].extend(classes={'AActor': ('GetActorGuid',)})
    buckets['5.4'] = buckets['5.3'].extend()
    buckets['5.5'] = buckets['5.4'].extend()
    return buckets


_DEFAULT_CLASS_METHODS: dict[str, tuple[str, ...]] = {
    'AActor': ('BeginPlay', 'EndPlay', 'Tick', 'GetActorLocation', 'SetActorLocation'),
    'UObject': ('GetName', 'GetClass', 'IsA'),
    'APawn': ('PossessedBy', 'UnPossessed', 'GetController'),
    'ACharacter': ('Jump', 'StopJumping', 'GetCharacterMovement'),
}


def _default_macro_template(macro_name: str, legacy: bool) -> str:
    if macro_name == 'UCLASS':
        body = 'GENERATED_UCLASS_BODY()\n' if legacy else 'GENERATED_BODY()\n\npublic:\n\tAClassName();\n'
        return ('UCLASS(BlueprintType, Blueprintable)\n'
                f'class GAME_API AClassName : public AActor\n{{\n\t{body}\n}};')
    if macro_name == 'USTRUCT':
        body = 'GENERATED_USTRUCT_BODY()' if legacy else 'GENERATED_BODY()'
        return f'USTRUCT(BlueprintType)\nstruct FStructName\n{{\n\t{body}\n}};'
    if macro_name == 'UFUNCTION':
        return _UFUNCTION
    if macro_name == 'UPROPERTY':
        return ('UPROPERTY(EditAnywhere, BlueprintReadWrite, Category = "Properties")\n'
                'float PropertyName;')
    if macro_name == 'UENUM':
        return _UENUM
    return ''


def _default_include_paths(version: EngineVersion) -> tuple[str, ...]:
    paths = _CORE_INCLUDES
    if not version.is_legacy:
        paths += (_ENGINE_CLASSES_INCLUDE,)
        if version.minor >= _UMG_MINOR:
            paths += (_UMG_INCLUDE,)
    return paths


# ---------------------------------------------------------------------------
# VersionedCapabilityModel
# ---------------------------------------------------------------------------

class VersionedCapabilityModel:
    """Version-aware lookups over an immutable table of buckets."""

    def __init__(self, buckets: Mapping[str, CapabilityBucket] | None = None):
        table = default_buckets() if buckets is None else dict(buckets)
        self._buckets: Mapping[str, CapabilityBucket] = MappingProxyType(table)
        keyed = sorted((_parse_key(k), k) for k in table)
        self._legacy_keys = tuple(k for (major, _), k in keyed if major < CURRENT_MAJOR)
        # (minor, key) for the current generation, ascending.
        self._current = tuple((minor, k) for (major, minor), k in keyed if major == CURRENT_MAJOR)

    @property
    def buckets(self) -> Mapping[str, CapabilityBucket]:
        return self._buckets

    def bucket_key(self, version: EngineVersion) -> str | None:
        """Return the key of the bucket serving *version* (None if no bucket fits).

        The legacy generation maps to its single bucket.  For the current
        generation the highest populated minor <= the requested minor wins,
        clamped to the lowest populated bucket.  Newer majors get the newest
        current-generation bucket.
        """
        if version.major < CURRENT_MAJOR:
            if self._legacy_keys:
                return self._legacy_keys[-1]
            return self._current[0][1] if self._current else None
        if not self._current:
            return self._legacy_keys[-1] if self._legacy_keys else None
        if version.major > CURRENT_MAJOR:
            return self._current[-1][1]
        chosen = self._current[0][1]
        for minor, key in self._current:
            if minor > version.minor:
                break
            chosen = key
        return chosen

    def _bucket(self, version: EngineVersion) -> CapabilityBucket | None:
        key = self.bucket_key(version)
        return self._buckets.get(key) if key is not None else None

    def class_methods(self, class_name: str, version: EngineVersion) -> tuple[str, ...]:
        bucket = self._bucket(version)
        if bucket is not None and class_name in bucket.classes:
            return bucket.classes[class_name]
        return _DEFAULT_CLASS_METHODS.get(class_name, ())

    def macro_template(self, macro_name: str, version: EngineVersion) -> str:
        bucket = self._bucket(version)
        if bucket is not None and macro_name in bucket.macros:
            return bucket.macros[macro_name]
        return _default_macro_template(macro_name, version.is_legacy)

    def include_paths(self, version: EngineVersion) -> tuple[str, ...]:
        bucket = self._bucket(version)
        if bucket is not None and bucket.include_paths:
            return bucket.include_paths
        return _default_include_paths(version)

    def macro_names(self, version: EngineVersion) -> tuple[str, ...]:
        bucket = self._bucket(version)
        names = tuple(bucket.macros) if bucket is not None else ()
        return names + tuple(m for m in KNOWN_MACROS if m not in names)
