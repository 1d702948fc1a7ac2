"""
Text snippets emitted into the original class and the proxy header.

All functions are pure: they read class metadata and naming settings and
return C++ source text. Placement is handled by
:mod:`soaproxy.generation.proxy_gen`.
"""

from __future__ import annotations

import re
from typing import List

from ..config import GenerationConfig
from ..interfaces import AccessKind
from ..metadata import ClassDeclaration, ClassDefinition
from ..source import SourceBuffer


def _word(name: str) -> "re.Pattern[str]":
    return re.compile(r"\b" + re.escape(name) + r"\b")


def forward_declaration_text(declaration: ClassDeclaration, settings: GenerationConfig) -> str:
    """``namespace proxy_internal { [template <...>] class Name_proxy; }``"""
    template = declaration.template_header
    head = f"{template} " if template else ""
    return (
        f"namespace {settings.internal_namespace} {{ "
        f"{head}{declaration.tag.value} {settings.proxy_name(declaration.name)}; }}"
    )


def element_type(definition: ClassDefinition, settings: GenerationConfig) -> str:
    """The common public field type with template type parameters made non-const."""
    type_name = definition.public_type or ""
    for parameter in definition.type_parameters:
        type_name = _word(parameter).sub(settings.nonconst_prefix + parameter, type_name)
    return type_name


def memberwise_initializers(definition: ClassDefinition, source_name: str = "other") -> str:
    return ", ".join(f"{f.name}({source_name}.{f.name})" for f in definition.fields)


def aggregate_constructor_text(definition: ClassDefinition, settings: GenerationConfig) -> str:
    """
    Proxy constructor from a base pointer and a stride.

    Public fields bind to ``ptr[k*n]`` where ``k`` counts public fields
    only; non-public fields are taken as parameters of the same name.
    """
    parameters = [
        f"{element_type(definition, settings)}* ptr",
        f"const {settings.size_type} n",
    ]
    parameters.extend(f"{f.type_name} {f.name}" for f in definition.non_public_fields)

    initializers = []
    public_index = 0
    for field_handle in definition.fields:
        if field_handle.access is AccessKind.PUBLIC:
            initializers.append(f"{field_handle.name}(ptr[{public_index}*n])")
            public_index += 1
        else:
            initializers.append(f"{field_handle.name}({field_handle.name})")

    return (
        f"{settings.proxy_name(definition.name)}({', '.join(parameters)}): "
        f"{', '.join(initializers)} {{}}"
    )


def _matching_paren(text: str, open_index: int) -> int:
    depth = 0
    for index in range(open_index, len(text)):
        if text[index] == "(":
            depth += 1
        elif text[index] == ")":
            depth -= 1
            if depth == 0:
                return index
    return len(text) - 1


def retarget_copy_constructor(
    text: str, class_name: str, constructor_name: str, parameter_type: str
) -> str:
    """
    Rewrite a copy constructor's text for another class and parameter type.

    The name in front of the parameter list becomes ``constructor_name``;
    inside the parameter list ``Name`` (with an optional template argument
    list) becomes ``parameter_type``. The initializer list and body are kept.
    """
    open_index = text.find("(")
    if open_index < 0:
        return text
    close_index = _matching_paren(text, open_index)
    head = _word(class_name).sub(constructor_name, text[:open_index])
    parameter_pattern = re.compile(r"\b" + re.escape(class_name) + r"\b(\s*<[^<>]*>)?")
    parameters = parameter_pattern.sub(parameter_type, text[open_index : close_index + 1])
    return head + parameters + text[close_index + 1 :]


def copy_from_original_text(
    definition: ClassDefinition, source: SourceBuffer, settings: GenerationConfig
) -> str:
    """Copy constructor of the proxy: ``Name_proxy(const Name_proxy& other)``."""
    proxy_name = settings.proxy_name(definition.name)
    copy_constructor = definition.copy_constructor
    if copy_constructor is not None and copy_constructor.has_body:
        return retarget_copy_constructor(
            source.dump(copy_constructor.range), definition.name, proxy_name, proxy_name
        )
    return f"{proxy_name}(const {proxy_name}& other): {memberwise_initializers(definition)} {{}}"


def converting_constructor_text(
    definition: ClassDefinition, source: SourceBuffer, settings: GenerationConfig
) -> str:
    """Constructor of the original class from its proxy: ``Name(const Name_proxy& other)``."""
    proxy_name = settings.proxy_name(definition.name)
    copy_constructor = definition.copy_constructor
    if copy_constructor is not None and copy_constructor.has_body:
        return retarget_copy_constructor(
            source.dump(copy_constructor.range), definition.name, definition.name, proxy_name
        )
    return (
        f"{definition.name}(const {proxy_name}& other): "
        f"{memberwise_initializers(definition)} {{}}"
    )


def template_alias_bindings(definition: ClassDefinition, settings: GenerationConfig) -> List[str]:
    """One ``using nonconst_T = ...`` per template type parameter."""
    return [
        f"using {settings.nonconst_prefix}{parameter} = "
        f"typename std::remove_const<{parameter}>::type;"
        for parameter in definition.type_parameters
    ]


def type_alias_statement(definition: ClassDefinition, settings: GenerationConfig) -> str:
    """``using Name_proxy = <ns>::proxy_internal::Name_proxy<args>;``"""
    proxy_name = settings.proxy_name(definition.name)
    arguments = definition.template_arguments
    argument_list = f"<{', '.join(arguments)}>" if arguments else ""
    return (
        f"using {proxy_name} = {definition.declaration.qualified_prefix}"
        f"{settings.internal_namespace}::{proxy_name}{argument_list};"
    )


def include_directive(class_name: str, settings: GenerationConfig) -> str:
    return f'#include "{settings.header_name(class_name)}"'


def include_guard(class_name: str, settings: GenerationConfig) -> str:
    return re.sub(r"[^A-Za-z0-9]", "_", settings.header_name(class_name)).upper()


def header_preamble(class_name: str, source_path: str, settings: GenerationConfig) -> str:
    guard = include_guard(class_name, settings)
    return (
        f"// Generated by soaproxy from {source_path}\n"
        f"#if !defined({guard})\n"
        f"#define {guard}\n"
        "\n"
        "#include <cstddef>\n"
        "#include <type_traits>\n"
        "\n"
    )


def header_footer() -> str:
    return "\n#endif\n"
