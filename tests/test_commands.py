"""Tests for the command collaborators: codegen, sync, logs and build_errors."""
from __future__ import annotations

from datetime import datetime

HEADER = """\
#pragma once

#include "CoreMinimal.h"
#include "Foo.generated.h"

UCLASS()
class GAME_API AFoo : public AActor
{
\tGENERATED_BODY()

public:
\tAFoo();
\tvirtual void BeginPlay() override;
\tint32 GetScore() const;
\tvoid Reset(int32 Value = 0);
\tvirtual void Pure() = 0;
};
"""

SOURCE = """\
#include "Foo.h"

AFoo::AFoo()
{
}

void AFoo::BeginPlay()
{
\tSuper::BeginPlay();
}
"""


class TestCodegen:
    def test_uclass_for_actor(self):
        from uelsp.handlers.codegen import ClassTemplate, generate_uclass
        out = generate_uclass(ClassTemplate(class_name='AMyActor'))
        assert 'UCLASS(BlueprintType, Blueprintable)' in out
        assert 'class GAME_API AMyActor : public AActor' in out
        assert '\tGENERATED_BODY()' in out
        assert 'virtual void Tick(float DeltaTime) override;' in out
        assert out.endswith('};')

    def test_uclass_for_object_has_no_tick(self):
        from uelsp.handlers.codegen import ClassTemplate, generate_uclass
        out = generate_uclass(ClassTemplate(class_name='UMyData', base_class='UObject'))
        assert 'public UObject' in out
        assert 'Tick' not in out

    def test_uclass_components_and_functions(self):
        from uelsp.handlers.codegen import ClassTemplate, generate_uclass
        out = generate_uclass(ClassTemplate(
            class_name='AMyActor', module_name='SHOOTER', blueprintable=False,
            components=['UStaticMesh'], custom_functions=['Fire'],
        ))
        assert 'UCLASS(BlueprintType)' in out
        assert 'class SHOOTER_API AMyActor' in out
        assert '\tclass UStaticMesh* StaticMeshComponent;' in out
        assert '\tvoid Fire();' in out

    def test_parse_declaration(self):
        from uelsp.handlers.codegen import parse_function_declaration
        info = parse_function_declaration('\tvirtual FVector GetAim(float Range, bool bTrace = true) const;')
        assert info.name == 'GetAim'
        assert info.return_type == 'FVector'
        assert info.parameters == ['float Range', 'bool bTrace']

    def test_parse_qualified_definition(self):
        from uelsp.handlers.codegen import parse_function_declaration
        info = parse_function_declaration('void AFoo::Reset(int32 Value)')
        assert info.name == 'Reset'
        assert info.return_type == 'void'

    def test_not_a_declaration(self):
        from uelsp.handlers.codegen import parse_function_declaration
        assert parse_function_declaration('\tif (bReady) {') is None
        assert parse_function_declaration('\treturn Compute(x);') is None
        assert parse_function_declaration('#include "Foo.h"') is None

    def test_function_at_line_searches_upwards(self):
        from uelsp.handlers.codegen import function_at_line
        text = 'void Fire(int32 Count);\n\n// trailing comment\n'
        assert function_at_line(text, 2).name == 'Fire'
        assert function_at_line(text, 2, search_back=1) is None

    def test_void_wrapper(self):
        from uelsp.handlers.codegen import FunctionInfo
        out = FunctionInfo(name='Fire', parameters=['int32 Count']).blueprint_wrapper()
        assert 'void Blueprint_Fire(int32 Count)' in out
        assert '\tFire(Count);' in out
        assert 'return' not in out


class TestSync:
    def _pair(self, tmp_path, header=HEADER, source=SOURCE):
        (tmp_path / 'Foo.h').write_text(header)
        (tmp_path / 'Foo.cpp').write_text(source)
        return str(tmp_path / 'Foo.h'), str(tmp_path / 'Foo.cpp')

    def test_corresponding_file(self):
        from uelsp.handlers.sync import corresponding_file
        assert corresponding_file('a/Foo.h') == 'a/Foo.cpp'
        assert corresponding_file('a/Foo.cpp') == 'a/Foo.h'
        assert corresponding_file('a/Foo.txt') == ''

    def test_missing_implementations(self, tmp_path):
        from uelsp.handlers.sync import analyze_file_pair
        header, _ = self._pair(tmp_path)
        info = analyze_file_pair(header)
        assert info.class_name == 'AFoo'
        assert 'BeginPlay' in info.source_functions
        assert [d for d in info.missing] == ['int32 GetScore() const;', 'void Reset(int32 Value = 0);']

    def test_stub_generation(self, tmp_path):
        from uelsp.handlers.sync import sync_header_source
        header, _ = self._pair(tmp_path)
        out = sync_header_source(header)
        assert 'int32 AFoo::GetScore() const\n{\n\treturn {};\n}' in out
        assert 'void AFoo::Reset(int32 Value)\n{\n}' in out
        assert 'BeginPlay' not in out
        assert 'Pure' not in out

    def test_everything_implemented(self, tmp_path):
        from uelsp.handlers.sync import sync_header_source
        header, _ = self._pair(
            tmp_path,
            header='class GAME_API AFoo : public AActor\n{\n\tvoid BeginPlay();\n};\n',
        )
        assert sync_header_source(header) == '// Foo.cpp implements every declared function'

    def test_header_from_source(self, tmp_path):
        from uelsp.handlers.sync import sync_header_source
        _, source = self._pair(tmp_path)
        assert sync_header_source(source) == '\tvoid BeginPlay();'

    def test_not_a_cpp_file(self):
        from uelsp.handlers.sync import sync_header_source
        assert sync_header_source('notes.txt') == '// Unable to sync: not a valid header or source file'


class TestLogs:
    def test_classify_line(self):
        from uelsp.handlers.logs import LogType, classify_line
        hits = classify_line('LogBlueprint: Warning: Node has no connections')
        types = [t for t, _ in hits]
        assert LogType.BLUEPRINT in types
        assert LogType.WARNING in types

    def test_quiet_line(self):
        from uelsp.handlers.logs import classify_line
        assert classify_line('LogInit: Build: ++UE5+Release-5.3') == []

    def test_severity(self, tmp_path):
        from uelsp.handlers.logs import LogSeverity, LogType, analyze_log_file
        log = tmp_path / 'Game.log'
        log.write_text(
            'LogGC: Garbage collection took 12.5ms\n'
            'LogMemory: Out of memory\n'
            'LogTemp: Warning: Missing asset\n'
        )
        issues = analyze_log_file(log)
        by_line = {(i.line, i.type): i.severity for i in issues}
        assert by_line[(1, LogType.MEMORY)] == LogSeverity.HIGH
        assert by_line[(2, LogType.MEMORY)] == LogSeverity.CRITICAL
        assert by_line[(3, LogType.WARNING)] == LogSeverity.LOW

    def test_report_groups_by_severity(self, tmp_path):
        from uelsp.handlers.logs import analyze_project, generate_report
        logs = tmp_path / 'Saved' / 'Logs'
        logs.mkdir(parents=True)
        (logs / 'Game.log').write_text('LogMemory: Out of memory\nLogTemp: Warning: odd\n')
        (logs / 'notes.txt').write_text('LogMemory: Out of memory\n')
        report = generate_report(analyze_project(str(tmp_path)), now=datetime(2024, 5, 1, 12, 0))
        assert ' * Generated: 2024-05-01T12:00:00' in report
        assert ' * Total Issues Found: 2' in report
        assert report.index('// CRITICAL SEVERITY ISSUES (1)') < report.index('// LOW SEVERITY ISSUES (1)')
        assert 'HIGH SEVERITY' not in report

    def test_no_logs(self, tmp_path):
        from uelsp.handlers.logs import analyze_logs
        assert 'Total Issues Found: 0' in analyze_logs(str(tmp_path))


class TestBuildErrors:
    def test_interpret_missing_include(self):
        from uelsp.handlers.build_errors import ErrorCategory, interpret_error
        err = interpret_error("Source/Foo.cpp(42): error: use of undeclared identifier 'UGameplayStatics'")
        assert err.file == 'Source/Foo.cpp'
        assert err.line == 42
        assert err.category == ErrorCategory.MISSING_INCLUDE
        assert "'UGameplayStatics'" in err.solution
        assert err.confidence == 0.9

    def test_interpret_clang_location(self):
        from uelsp.handlers.build_errors import ErrorCategory, interpret_error
        err = interpret_error("/src/Foo.h:7:3: error: Cannot find definition for module 'UMG'")
        assert (err.file, err.line) == ('/src/Foo.h', 7)
        assert err.category == ErrorCategory.MODULE_NOT_FOUND
        assert "Add 'UMG' to PublicDependencyModuleNames" in err.solution

    def test_unknown_error(self):
        from uelsp.handlers.build_errors import ErrorCategory, interpret_error
        err = interpret_error('error: something nobody has seen before')
        assert err.category == ErrorCategory.UNKNOWN
        assert err.solution == 'Manual investigation required'

    def test_format_solution(self):
        from uelsp.handlers.build_errors import interpret_error
        text = interpret_error('Foo.cpp(1): error: GENERATED_BODY() not found').format_solution()
        assert '// Category: UnrealMacro' in text
        assert '// Confidence: 95%' in text

    def test_report_is_capped(self, tmp_path):
        from uelsp.handlers.build_errors import MAX_REPORTED, interpret_errors
        logs = tmp_path / 'Saved' / 'Logs'
        logs.mkdir(parents=True)
        lines = [f"Foo.cpp({n}): error: expected ';'" for n in range(MAX_REPORTED + 5)]
        (logs / 'UnrealBuildTool.log').write_text('\n'.join(lines + ['Build succeeded? no']) + '\n')
        report = interpret_errors(str(tmp_path))
        assert f'Found {MAX_REPORTED + 5} compile errors' in report
        assert f'// ERROR #{MAX_REPORTED} [SyntaxError]' in report
        assert f'// ERROR #{MAX_REPORTED + 1} ' not in report

    def test_missing_build_log(self, tmp_path):
        from uelsp.handlers.build_errors import interpret_errors
        assert 'Found 0 compile errors' in interpret_errors(str(tmp_path))
