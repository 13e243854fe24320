"""Tests for uelsp.scanner: header method extraction and the background scan."""
from __future__ import annotations

ACTOR_HEADER = """\
#pragma once

#include "CoreMinimal.h"
#include "MyActor.generated.h"

UCLASS()
class ENGINE_API AMyActor : public AActor
{
\tGENERATED_BODY()

public:
\tAMyActor();
\t~AMyActor();

\tvirtual void BeginPlay() override;
\tvoid CustomFunction(int32 Value) const;
\tbool operator==(const AMyActor& Other) const;
\tvoid lowercaseHelper();
};
"""


def _engine(tmp_path, header=ACTOR_HEADER, rel='Engine/Source/Runtime/Engine/Classes/GameFramework'):
    from uelsp.version import EngineVersion
    include = tmp_path / rel
    include.mkdir(parents=True)
    (include / 'MyActor.h').write_text(header)
    return EngineVersion(5, 3, 0, str(tmp_path))


class TestExtractClassMethods:
    def test_declared_methods(self):
        from uelsp.scanner import extract_class_methods
        found = extract_class_methods(ACTOR_HEADER)
        assert found == {'AMyActor': {'BeginPlay', 'CustomFunction'}}

    def test_requires_api_export(self):
        from uelsp.scanner import extract_class_methods
        source = 'class FPlain : public FBase\n{\n\tvoid Run();\n};\n'
        assert extract_class_methods(source) == {}

    def test_multiple_classes(self):
        from uelsp.scanner import extract_class_methods
        source = (
            'class CORE_API UFirst : public UObject\n{\n\tvoid Alpha();\n};\n'
            'class CORE_API USecond : public UObject\n{\n\tvoid Beta();\n};\n'
        )
        found = extract_class_methods(source)
        assert 'Alpha' in found['UFirst']
        assert found['USecond'] == {'Beta'}


class TestHeaderIntrospectionScanner:
    def test_background_scan_collects_methods(self, tmp_path):
        from uelsp.capabilities import VersionedCapabilityModel
        from uelsp.scanner import HeaderIntrospectionScanner
        scanner = HeaderIntrospectionScanner(VersionedCapabilityModel(), _engine(tmp_path))
        scanner.start_scan()
        assert scanner.wait(10)
        assert scanner.is_ready
        assert scanner.class_methods('AMyActor') == frozenset({'BeginPlay', 'CustomFunction'})
        assert scanner.progress == (1, 1)
        scanner.stop()

    def test_start_is_idempotent(self, tmp_path):
        from uelsp.capabilities import VersionedCapabilityModel
        from uelsp.scanner import HeaderIntrospectionScanner
        scanner = HeaderIntrospectionScanner(VersionedCapabilityModel(), _engine(tmp_path))
        scanner.start_scan()
        scanner.start_scan()
        assert scanner.wait(10)
        assert scanner.progress == (1, 1)
        scanner.stop()

    def test_not_ready_before_start(self, tmp_path):
        from uelsp.capabilities import VersionedCapabilityModel
        from uelsp.scanner import HeaderIntrospectionScanner
        scanner = HeaderIntrospectionScanner(VersionedCapabilityModel(), _engine(tmp_path))
        assert not scanner.is_ready
        assert scanner.class_methods('AMyActor') == frozenset()

    def test_stop_before_walk(self, tmp_path):
        from uelsp.capabilities import VersionedCapabilityModel
        from uelsp.scanner import HeaderIntrospectionScanner
        scanner = HeaderIntrospectionScanner(VersionedCapabilityModel(), _engine(tmp_path))
        scanner.stop()
        scanner.start_scan()
        assert scanner.wait(10)
        assert scanner.class_methods('AMyActor') == frozenset()

    def test_no_install_path(self):
        from uelsp.capabilities import VersionedCapabilityModel
        from uelsp.scanner import HeaderIntrospectionScanner
        from uelsp.version import EngineVersion
        scanner = HeaderIntrospectionScanner(VersionedCapabilityModel(), EngineVersion(5, 3))
        scanner.start_scan()
        assert scanner.wait(10)
        assert scanner.progress == (0, 0)

    def test_only_headers_are_read(self, tmp_path):
        from uelsp.capabilities import VersionedCapabilityModel
        from uelsp.scanner import HeaderIntrospectionScanner
        version = _engine(tmp_path)
        cpp = tmp_path / 'Engine/Source/Runtime/Engine/Classes/GameFramework/Other.cpp'
        cpp.write_text('class ENGINE_API AOther : public AActor\n{\n\tvoid Hidden();\n};\n')
        scanner = HeaderIntrospectionScanner(VersionedCapabilityModel(), version)
        scanner.scan()
        assert scanner.class_methods('AOther') == frozenset()
        assert scanner.progress == (1, 1)

    def test_include_paths_follow_version(self, tmp_path):
        from uelsp.capabilities import VersionedCapabilityModel
        from uelsp.scanner import HeaderIntrospectionScanner
        from uelsp.version import EngineVersion
        _engine(tmp_path, rel='Engine/Source/Runtime/UMG/Public')
        old = HeaderIntrospectionScanner(VersionedCapabilityModel(),
                                         EngineVersion(5, 1, 0, str(tmp_path)))
        old.scan()
        assert old.class_methods('AMyActor') == frozenset()
        new = HeaderIntrospectionScanner(VersionedCapabilityModel(),
                                         EngineVersion(5, 2, 0, str(tmp_path)))
        new.scan()
        assert 'BeginPlay' in new.class_methods('AMyActor')
