"""
Boilerplate emitters for reflected Unreal types.

Small, stateless text generators used by the ``generateUClass`` and
``generateBlueprintFunction`` commands.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

# Bases whose generated class overrides BeginPlay/Tick.
_TICKING_BASES = {'AActor', 'APawn', 'ACharacter'}

# [virtual] [static] <return type> Name(<params>) [const] ;|{
_FUNCTION_DECL_RE = re.compile(
    r'^\s*(?:virtual\s+|static\s+|FORCEINLINE\s+)*'
    r'(?P<ret>[\w:<>*&,\s]+?)\s*\b(?P<name>[A-Za-z_]\w*(?:::[A-Za-z_]\w*)*)\s*'
    r'\((?P<params>[^)]*)\)\s*(?:const\s*)?(?:override\s*)?(?:;|\{|$)'
)
_NOT_FUNCTIONS = {'if', 'for', 'while', 'switch', 'return', 'sizeof', 'UFUNCTION',
                  'UPROPERTY', 'UCLASS', 'USTRUCT', 'UENUM', 'GENERATED_BODY'}


@dataclass
class ClassTemplate:
    class_name: str
    base_class: str = 'AActor'
    module_name: str = 'GAME'
    blueprint_type: bool = True
    blueprintable: bool = True
    components: list[str] = field(default_factory=list)
    custom_functions: list[str] = field(default_factory=list)


@dataclass
class FunctionInfo:
    name: str
    return_type: str = 'void'
    parameters: list[str] = field(default_factory=list)

    def blueprint_wrapper(self) -> str:
        """Return a ``BlueprintCallable`` wrapper forwarding to this function."""
        params = ', '.join(self.parameters)
        args = ', '.join(p.split()[-1].lstrip('*&') for p in self.parameters if p.split())
        call = f'{self.name}({args})'
        body = f'\t{call};\n' if self.return_type == 'void' else f'\treturn {call};\n'
        return (
            'UFUNCTION(BlueprintCallable, Category = "Gameplay")\n'
            f'{self.return_type} Blueprint_{self.name}({params})\n'
            '{\n'
            f'\t// Blueprint wrapper for {self.name}\n'
            f'{body}'
            '}\n'
        )


def generate_uclass(tpl: ClassTemplate) -> str:
    specifiers = [s for s, on in (('BlueprintType', tpl.blueprint_type),
                                  ('Blueprintable', tpl.blueprintable)) if on]
    lines = [
        '#pragma once',
        '',
        '#include "CoreMinimal.h"',
        f'#include "{tpl.base_class}.h"',
        f'#include "{tpl.class_name}.generated.h"',
        '',
        f'UCLASS({", ".join(specifiers)})',
        f'class {tpl.module_name}_API {tpl.class_name} : public {tpl.base_class}',
        '{',
        '\tGENERATED_BODY()',
        '',
        'public:',
        f'\t{tpl.class_name}();',
        '',
    ]
    if tpl.base_class in _TICKING_BASES:
        lines += [
            'protected:',
            '\tvirtual void BeginPlay() override;',
            '',
            'public:',
            '\tvirtual void Tick(float DeltaTime) override;',
            '',
        ]
    for component in tpl.components:
        lines += [
            '\tUPROPERTY(VisibleAnywhere, BlueprintReadOnly, Category = "Components")',
            f'\tclass {component}* {component[1:]}Component;',
            '',
        ]
    for func in tpl.custom_functions:
        lines += [
            '\tUFUNCTION(BlueprintCallable, Category = "Gameplay")',
            f'\tvoid {func}();',
            '',
        ]
    lines.append('};')
    return '\n'.join(lines)


def parse_function_declaration(line: str) -> FunctionInfo | None:
    """Return the function declared on *line*, or None."""
    m = _FUNCTION_DECL_RE.match(line)
    if m is None:
        return None
    name = m.group('name').split('::')[-1]
    ret = ' '.join(m.group('ret').split())
    if name in _NOT_FUNCTIONS or not ret or ret in _NOT_FUNCTIONS or ret.endswith('::'):
        return None
    params = [p.strip().split('=')[0].strip() for p in m.group('params').split(',')]
    return FunctionInfo(
        name=name,
        return_type=ret,
        parameters=[p for p in params if p and p != 'void'],
    )


def function_at_line(text: str, line: int, search_back: int = 3) -> FunctionInfo | None:
    """Find the function declared on *line* or on one of the lines just above."""
    lines = text.splitlines()
    for idx in range(min(line, len(lines) - 1), max(line - search_back, 0) - 1, -1):
        info = parse_function_declaration(lines[idx])
        if info is not None:
            return info
    return None
