"""
Decoding and encoding of Franka documents.

Documents (modules and programs) arrive as YAML or as already-deserialized
dicts. Every logic tree is decoded here, once, into franka.expressions
nodes; anything that does not fit the expression grammar is rejected at
this point with a typed ExpressionError.

Encoding writes the canonical spelling back, so that decoding an encoded
tree yields an equal tree.
"""
from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from franka.errors import (
    DocumentError,
    EvaluationDepthExceeded,
    ExpressionError,
    InvalidArguments,
    InvalidArrayExpression,
    InvalidInputType,
    MissingInExpression,
    UnknownOperation,
)
from franka.expressions import (
    DEFAULT_MAX_DEPTH,
    BinaryExpression,
    BinaryOperator,
    ChainClause,
    Concat,
    Conditional,
    ConditionalStyle,
    Expression,
    IfChain,
    Let,
    Literal,
    LogicalExpression,
    LogicalOperator,
    Sequence,
    SetOutputs,
    Substring,
    UnaryExpression,
    UnaryOperator,
    VariableReference,
)
from franka.model import FunctionDefinition, InputDefinition, Module, Program
from franka.outputs import output_from_data, output_to_data
from franka.values import OUTPUT_TYPES, is_value, type_name

_VARIABLE_SHORTHAND = re.compile(r"^\$([A-Za-z_][A-Za-z0-9_]*)$")

UNARY_OPERATIONS = {op.value: op for op in UnaryOperator}
LOGICAL_OPERATIONS = {op.value: op for op in LogicalOperator}


# =============================================================================
# YAML
# =============================================================================

# Implicit scalar resolution follows the YAML 1.2 core schema, not PyYAML's
# YAML 1.1 default: no yes/no/on/off booleans, no sexagesimal or underscored
# numbers, no leading-zero octals, no timestamps and no "=" value key.
_CORE_SCHEMA_RESOLVERS = [
    (
        "tag:yaml.org,2002:bool",
        re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
        list("tTfF"),
    ),
    (
        "tag:yaml.org,2002:int",
        re.compile(r"^(?:[-+]?[0-9]+|0o[0-7]+|0x[0-9a-fA-F]+)$"),
        list("-+0123456789"),
    ),
    (
        "tag:yaml.org,2002:float",
        re.compile(
            r"""^(?:[-+]?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?)(?:[eE][-+]?[0-9]+)?
            |[-+]?\.(?:inf|Inf|INF)
            |\.(?:nan|NaN|NAN))$""",
            re.X,
        ),
        list("-+0123456789."),
    ),
]

_REPLACED_TAGS = (
    "tag:yaml.org,2002:bool",
    "tag:yaml.org,2002:int",
    "tag:yaml.org,2002:float",
    "tag:yaml.org,2002:timestamp",
    "tag:yaml.org,2002:value",
)


def _core_schema_resolvers() -> Dict[Any, list]:
    resolvers = {
        first: [(tag, regexp) for tag, regexp in entries if tag not in _REPLACED_TAGS]
        for first, entries in yaml.SafeLoader.yaml_implicit_resolvers.items()
    }
    for tag, regexp, first_chars in _CORE_SCHEMA_RESOLVERS:
        for first in first_chars:
            resolvers.setdefault(first, []).append((tag, regexp))
    return resolvers


class CoreSchemaLoader(yaml.SafeLoader):
    """
    Safe loader limited to the scalars the language knows.

    Only true/false are booleans (yes/no/on/off stay strings), 1e3 is a
    number, 012 is decimal, and dates, 1:30 and 1_000 stay strings.
    """
    pass


class CoreSchemaDumper(yaml.SafeDumper):
    """Safe dumper that quotes exactly the strings CoreSchemaLoader would not read back as strings."""
    pass


CoreSchemaLoader.yaml_implicit_resolvers = _core_schema_resolvers()
CoreSchemaDumper.yaml_implicit_resolvers = _core_schema_resolvers()


def _construct_core_int(loader: CoreSchemaLoader, node: yaml.ScalarNode) -> int:
    value = loader.construct_scalar(node)
    if value.startswith("0o"):
        return int(value[2:], 8)
    if value.startswith("0x"):
        return int(value[2:], 16)
    return int(value)


def _construct_core_float(loader: CoreSchemaLoader, node: yaml.ScalarNode) -> float:
    value = loader.construct_scalar(node)
    lowered = value.lower()
    if lowered == ".nan":
        return float("nan")
    if lowered.lstrip("+-") == ".inf":
        return float("-inf") if lowered.startswith("-") else float("inf")
    return float(value)


CoreSchemaLoader.add_constructor("tag:yaml.org,2002:int", _construct_core_int)
CoreSchemaLoader.add_constructor("tag:yaml.org,2002:float", _construct_core_float)


def load_yaml(text: str) -> Any:
    try:
        return yaml.load(text, Loader=CoreSchemaLoader)
    except yaml.YAMLError as e:
        raise DocumentError(f"Invalid YAML: {e}") from e
    except RecursionError as e:
        raise DocumentError("Invalid YAML: document is nested too deeply") from e


def dump_yaml(data: Any) -> str:
    return yaml.dump(data, Dumper=CoreSchemaDumper, sort_keys=False, allow_unicode=True)


# =============================================================================
# Expressions
# =============================================================================


def expr_from_data(data: Any, branch: bool = False, depth: int = 0) -> Expression:
    """
    Decode one logic tree.

    Args:
        data: Deserialized document fragment
        branch: True when data is the then/else of a conditional or chain
            clause, where a non-chain list is a Sequence
        depth: Nesting level of data within the whole tree

    Raises:
        ExpressionError and its subclasses
        EvaluationDepthExceeded: nesting deeper than DEFAULT_MAX_DEPTH
    """
    if depth > DEFAULT_MAX_DEPTH:
        raise EvaluationDepthExceeded(DEFAULT_MAX_DEPTH)
    if isinstance(data, str):
        match = _VARIABLE_SHORTHAND.match(data)
        if match:
            return VariableReference(match.group(1))
        return Literal(data)
    if is_value(data):
        return Literal(data)
    if isinstance(data, list):
        return _list_from_data(data, branch, depth + 1)
    if isinstance(data, Mapping):
        return _mapping_from_data(data, depth + 1)
    raise ExpressionError(f"Unsupported value in logic: {data!r} ({type(data).__name__})")


def _branch_from_data(data: Mapping[str, Any], key: str, depth: int) -> Optional[Expression]:
    if key not in data:
        return None
    return expr_from_data(data[key], branch=True, depth=depth)


def _is_chain_shape(items: List[Any]) -> bool:
    if not items:
        return False
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            return False
        keys = set(item.keys())
        if keys == {"if", "then"}:
            continue
        if keys == {"else"} and index == len(items) - 1:
            continue
        return False
    return True


def _list_from_data(items: List[Any], branch: bool, depth: int) -> Expression:
    if _is_chain_shape(items):
        clauses = []
        else_branch = None
        for item in items:
            if "else" in item:
                else_branch = expr_from_data(item["else"], branch=True, depth=depth)
            else:
                clauses.append(
                    ChainClause(
                        condition=expr_from_data(item["if"], depth=depth),
                        result=expr_from_data(item["then"], branch=True, depth=depth),
                    )
                )
        return IfChain(clauses=tuple(clauses), else_branch=else_branch)
    if branch and items:
        return Sequence(items=tuple(expr_from_data(item, depth=depth) for item in items))
    if not items:
        raise InvalidArrayExpression("empty array")
    raise InvalidArrayExpression(
        "every element but the last must be {if, then} and the last may be {else}"
    )


def _mapping_from_data(data: Mapping[str, Any], depth: int) -> Expression:
    keys = set(data.keys())

    if "if" in keys and ("then" in keys or "else" in keys):
        extra = keys - {"if", "then", "else"}
        if extra:
            raise InvalidArguments("if", f"has unexpected keys: {', '.join(sorted(map(str, extra)))}")
        return Conditional(
            condition=expr_from_data(data["if"], depth=depth),
            then_branch=_branch_from_data(data, "then", depth),
            else_branch=_branch_from_data(data, "else", depth),
            style=ConditionalStyle.FLAT,
        )

    if "let" in keys:
        return _let_from_data(data, depth)

    if len(data) != 1:
        if not data:
            raise UnknownOperation("{}")
        raise UnknownOperation(", ".join(str(key) for key in data))

    name, args = next(iter(data.items()))

    if name == "if":
        return _nested_if_from_data(args, depth)

    if name == "else":
        raise InvalidArguments("else", "is only valid as the last element of an if chain")

    if name == "get":
        if not isinstance(args, str) or not args:
            raise InvalidArguments("get", "requires a variable name")
        return VariableReference(args)

    if name == "set":
        if not isinstance(args, Mapping):
            raise InvalidArguments("set", "requires a mapping of output names to expressions")
        return SetOutputs(
            fields=tuple(
                (str(field), expr_from_data(value, depth=depth)) for field, value in args.items()
            )
        )

    if name == "concat":
        return Concat(
            values=tuple(expr_from_data(v, depth=depth) for v in _list_argument(name, args))
        )

    if name in LOGICAL_OPERATIONS:
        return LogicalExpression(
            operator=LOGICAL_OPERATIONS[name],
            operands=tuple(expr_from_data(v, depth=depth) for v in _list_argument(name, args)),
        )

    if name in UNARY_OPERATIONS:
        return UnaryExpression(
            operator=UNARY_OPERATIONS[name],
            operand=expr_from_data(_single_argument(args), depth=depth),
        )

    if name == "substring":
        _require_keys(name, args, required=("value", "start"), optional=("end",))
        return Substring(
            value=expr_from_data(args["value"], depth=depth),
            start=expr_from_data(args["start"], depth=depth),
            end=expr_from_data(args["end"], depth=depth) if "end" in args else None,
        )

    if name == "equals":
        _require_keys(name, args, required=("left", "right"))
        return BinaryExpression(
            operator=BinaryOperator.EQUALS,
            left=expr_from_data(args["left"], depth=depth),
            right=expr_from_data(args["right"], depth=depth),
        )

    raise UnknownOperation(str(name))


def _list_argument(operation: str, args: Any) -> List[Any]:
    """Accept [a, b] or {values: [a, b]}."""
    if isinstance(args, list):
        return args
    if isinstance(args, Mapping) and set(args.keys()) == {"values"} and isinstance(args["values"], list):
        return args["values"]
    raise InvalidArguments(operation, 'requires an array or an object with a "values" array')


def _single_argument(args: Any) -> Any:
    """Accept expr or {value: expr}."""
    if isinstance(args, Mapping) and set(args.keys()) == {"value"}:
        return args["value"]
    return args


def _require_keys(operation: str, args: Any, required=(), optional=()) -> None:
    if not isinstance(args, Mapping):
        quoted = " and ".join(f'"{key}"' for key in required)
        raise InvalidArguments(operation, f"requires {quoted} properties")
    missing = [key for key in required if key not in args]
    if missing:
        quoted = " and ".join(f'"{key}"' for key in required)
        raise InvalidArguments(operation, f"requires {quoted} properties")
    extra = set(args.keys()) - set(required) - set(optional)
    if extra:
        raise InvalidArguments(operation, f"has unexpected keys: {', '.join(sorted(map(str, extra)))}")


def _nested_if_from_data(args: Any, depth: int) -> Expression:
    if (
        not isinstance(args, Mapping)
        or "condition" not in args
        or not ("then" in args or "else" in args)
    ):
        raise InvalidArguments("if", 'requires a "condition" and a "then" or "else" branch')
    extra = set(args.keys()) - {"condition", "then", "else"}
    if extra:
        raise InvalidArguments("if", f"has unexpected keys: {', '.join(sorted(map(str, extra)))}")
    return Conditional(
        condition=expr_from_data(args["condition"], depth=depth),
        then_branch=_branch_from_data(args, "then", depth),
        else_branch=_branch_from_data(args, "else", depth),
        style=ConditionalStyle.NESTED,
    )


def _let_from_data(data: Mapping[str, Any], depth: int) -> Expression:
    extra = set(data.keys()) - {"let", "in"}
    if extra:
        raise InvalidArguments("let", f"has unexpected keys: {', '.join(sorted(map(str, extra)))}")
    bindings = data["let"]
    if not isinstance(bindings, Mapping):
        raise InvalidArguments("let", "requires a mapping of bindings")
    if "in" in data:
        if "in" in bindings:
            raise InvalidArguments("let", 'has two "in" expressions')
        body = data["in"]
    elif "in" in bindings:
        body = bindings["in"]
    else:
        raise MissingInExpression()
    return Let(
        bindings=tuple(
            (str(name), expr_from_data(value, depth=depth))
            for name, value in bindings.items()
            if name != "in"
        ),
        body=expr_from_data(body, depth=depth),
    )


def expr_to_data(expr: Expression) -> Any:
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, VariableReference):
        return {"get": expr.name}
    if isinstance(expr, Concat):
        return {"concat": [expr_to_data(v) for v in expr.values]}
    if isinstance(expr, UnaryExpression):
        return {expr.operator.value: expr_to_data(expr.operand)}
    if isinstance(expr, Substring):
        args = {"value": expr_to_data(expr.value), "start": expr_to_data(expr.start)}
        if expr.end is not None:
            args["end"] = expr_to_data(expr.end)
        return {"substring": args}
    if isinstance(expr, LogicalExpression):
        return {expr.operator.value: [expr_to_data(v) for v in expr.operands]}
    if isinstance(expr, BinaryExpression):
        return {
            expr.operator.value: {
                "left": expr_to_data(expr.left),
                "right": expr_to_data(expr.right),
            }
        }
    if isinstance(expr, SetOutputs):
        return {"set": {name: expr_to_data(value) for name, value in expr.fields}}
    if isinstance(expr, Let):
        return {
            "let": {name: expr_to_data(value) for name, value in expr.bindings},
            "in": expr_to_data(expr.body),
        }
    if isinstance(expr, Conditional):
        branches = {}
        if expr.then_branch is not None:
            branches["then"] = expr_to_data(expr.then_branch)
        if expr.else_branch is not None:
            branches["else"] = expr_to_data(expr.else_branch)
        if expr.style == ConditionalStyle.NESTED:
            return {"if": {"condition": expr_to_data(expr.condition), **branches}}
        return {"if": expr_to_data(expr.condition), **branches}
    if isinstance(expr, IfChain):
        items: List[Any] = [
            {"if": expr_to_data(c.condition), "then": expr_to_data(c.result)} for c in expr.clauses
        ]
        if expr.else_branch is not None:
            items.append({"else": expr_to_data(expr.else_branch)})
        return items
    if isinstance(expr, Sequence):
        return [expr_to_data(item) for item in expr.items]
    raise TypeError(f"Unsupported Expression type: {type(expr)}")


# =============================================================================
# Inputs, functions, modules, programs
# =============================================================================


def input_from_data(name: str, d: Any) -> InputDefinition:
    if not isinstance(d, Mapping):
        raise InvalidInputType(name, None)
    declared = d.get("type")
    if declared not in OUTPUT_TYPES:
        raise InvalidInputType(name, declared)
    if "default" in d:
        return InputDefinition(type=declared, default=d["default"], has_default=True)
    return InputDefinition(type=declared)


def inputs_from_data(d: Any) -> Dict[str, InputDefinition]:
    if d is None:
        return {}
    if not isinstance(d, Mapping):
        raise DocumentError('"input" must be a mapping of input names to definitions')
    return {str(name): input_from_data(str(name), definition) for name, definition in d.items()}


def inputs_to_data(inputs: Mapping[str, InputDefinition]) -> Dict[str, Any]:
    result = {}
    for name, definition in inputs.items():
        entry: Dict[str, Any] = {"type": definition.type}
        if definition.has_default:
            entry["default"] = definition.default
        result[name] = entry
    return result


def function_from_data(name: str, d: Any) -> FunctionDefinition:
    if not isinstance(d, Mapping):
        raise DocumentError(f'Function "{name}" must be a mapping')
    if "logic" not in d:
        raise DocumentError(f'Function "{name}" must have a "logic" field')
    return FunctionDefinition(
        logic=expr_from_data(d["logic"]),
        description=d.get("description"),
        inputs=inputs_from_data(d.get("input")),
        output=output_from_data(d.get("output")),
    )


def function_to_data(f: FunctionDefinition) -> Dict[str, Any]:
    d: Dict[str, Any] = {}
    if f.description is not None:
        d["description"] = f.description
    if f.inputs:
        d["input"] = inputs_to_data(f.inputs)
    if f.output is not None:
        d["output"] = output_to_data(f.output)
    d["logic"] = expr_to_data(f.logic)
    return d


def is_module_document(d: Any) -> bool:
    return isinstance(d, Mapping) and "module" in d and "functions" in d


def module_from_data(d: Any) -> Module:
    if not is_module_document(d):
        raise DocumentError('Module documents must contain "module" and "functions"')
    meta = d["module"]
    if not isinstance(meta, Mapping) or "name" not in meta:
        raise DocumentError('"module" must be a mapping with a "name"')
    functions = d["functions"]
    if not isinstance(functions, Mapping):
        raise DocumentError('"functions" must be a mapping of function names to definitions')
    return Module(
        name=str(meta["name"]),
        description=meta.get("description"),
        functions={str(n): function_from_data(str(n), f) for n, f in functions.items()},
    )


def module_to_data(m: Module) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"name": m.name}
    if m.description is not None:
        meta["description"] = m.description
    return {
        "module": meta,
        "functions": {name: function_to_data(f) for name, f in m.functions.items()},
    }


def _legacy_inputs(variables: Any) -> Dict[str, InputDefinition]:
    """Untyped `variables: {name: value}` of early program documents."""
    if not isinstance(variables, Mapping):
        raise DocumentError('"variables" must be a mapping of names to values')
    inputs = {}
    for name, value in variables.items():
        inferred = type_name(value)
        inputs[str(name)] = InputDefinition(
            type=inferred if inferred in OUTPUT_TYPES else "string",
            default=value,
            has_default=True,
        )
    return inputs


def program_from_data(d: Any) -> Program:
    if not isinstance(d, Mapping):
        raise DocumentError("Program documents must be a mapping")
    meta = d.get("program") or {}
    if not isinstance(meta, Mapping):
        raise DocumentError('"program" must be a mapping')
    if "logic" in d:
        logic = d["logic"]
    elif "expression" in d:
        logic = d["expression"]
    else:
        raise DocumentError('Program must have a "logic" field')
    inputs = inputs_from_data(d.get("input"))
    if "variables" in d:
        inputs = {**_legacy_inputs(d["variables"]), **inputs}
    return Program(
        name=str(meta.get("name", "")),
        description=meta.get("description"),
        inputs=inputs,
        output=output_from_data(d.get("output")),
        logic=expr_from_data(logic),
    )


def program_to_data(p: Program) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"name": p.name}
    if p.description is not None:
        meta["description"] = p.description
    d: Dict[str, Any] = {"program": meta}
    if p.inputs:
        d["input"] = inputs_to_data(p.inputs)
    if p.output is not None:
        d["output"] = output_to_data(p.output)
    d["logic"] = expr_to_data(p.logic)
    return d


def document_from_data(d: Any) -> Union[Module, Program]:
    if is_module_document(d):
        return module_from_data(d)
    return program_from_data(d)


def module_to_json(m: Module) -> str:
    return json.dumps(module_to_data(m))


def module_from_json(s: str) -> Module:
    return module_from_data(json.loads(s))


def module_to_yaml(m: Module) -> str:
    return dump_yaml(module_to_data(m))


def module_from_yaml(s: str) -> Module:
    return module_from_data(load_yaml(s))


def program_to_yaml(p: Program) -> str:
    return dump_yaml(program_to_data(p))


def program_from_yaml(s: str) -> Program:
    return program_from_data(load_yaml(s))


def document_from_yaml(s: str) -> Union[Module, Program]:
    return document_from_data(load_yaml(s))
