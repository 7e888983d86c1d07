"""
Example Franka documents.

Two flavours:
    - EXAMPLE_DOCUMENTS: YAML sources as a user would write them, loadable
      with load_example()
    - build_grading_module(): the same kind of module assembled directly
      from model and expression objects, with no YAML involved
"""
from __future__ import annotations

from typing import Dict, List, Union

from franka.expressions import (
    BinaryExpression,
    BinaryOperator,
    ChainClause,
    Concat,
    Conditional,
    IfChain,
    Literal,
    Sequence,
    SetOutputs,
    VariableReference,
)
from franka.model import FunctionDefinition, InputDefinition, Module, NamedOutputs, Program
from franka.serialization import document_from_yaml

HELLO = """\
program:
  name: Hello
input:
  name:
    type: string
    default: Franka
output:
  type: string
logic:
  concat: ["Hello, ", {get: name}, "!"]
"""

STRING_OPERATIONS = """\
module:
  name: strings
  description: Case, length and substring helpers
functions:
  shout:
    input:
      text: {type: string, default: quiet please}
    output: {type: string}
    logic:
      uppercase: {get: text}
  initials:
    input:
      first: {type: string, default: ada}
      last: {type: string, default: lovelace}
    output: {type: string}
    logic:
      uppercase:
        concat:
          - substring: {value: {get: first}, start: 0, end: 1}
          - substring: {value: {get: last}, start: 0, end: 1}
  describe_length:
    input:
      text: {type: string, default: Franka}
    output: {type: string}
    logic:
      concat: [{get: text}, " has ", {length: {get: text}}, " characters"]
"""

BOOLEAN_LOGIC = """\
module:
  name: access
functions:
  check_access:
    input:
      is_admin: {type: boolean, default: false}
      is_owner: {type: boolean, default: true}
      is_banned: {type: boolean, default: false}
    output: {type: string}
    logic:
      if:
        and:
          - or: [{get: is_admin}, {get: is_owner}]
          - not: {get: is_banned}
      then: granted
      else: denied
"""

IF_CHAINING = """\
module:
  name: traffic
functions:
  action:
    input:
      light: {type: string, default: amber}
    output: {type: string}
    logic:
      - if: {equals: {left: {get: light}, right: green}}
        then: go
      - if: {equals: {left: {get: light}, right: amber}}
        then: slow down
      - else: stop
"""

CONDITIONAL_OUTPUTS = """\
module:
  name: greeter
functions:
  greet:
    input:
      name: {type: string, default: Ada}
      formal: {type: boolean, default: true}
    output:
      greeting: {type: string}
      category: {type: string}
    logic:
      let:
        display: {uppercase: {get: name}}
      in:
        if: {get: formal}
        then:
          - set: {category: formal}
          - set: {greeting: {concat: ["Good day, ", {get: display}]}}
        else:
          - set: {category: casual}
          - set: {greeting: {concat: ["Hey ", {get: name}]}}
"""

EXAMPLE_DOCUMENTS: Dict[str, str] = {
    "hello": HELLO,
    "string-operations": STRING_OPERATIONS,
    "boolean-logic": BOOLEAN_LOGIC,
    "if-chaining": IF_CHAINING,
    "conditional-outputs": CONDITIONAL_OUTPUTS,
}


def example_names() -> List[str]:
    return list(EXAMPLE_DOCUMENTS)


def load_example(name: str) -> Union[Module, Program]:
    if name not in EXAMPLE_DOCUMENTS:
        raise KeyError(f"Unknown example: {name}. Available: {', '.join(EXAMPLE_DOCUMENTS)}")
    return document_from_yaml(EXAMPLE_DOCUMENTS[name])


def _score_is(points: int) -> BinaryExpression:
    return BinaryExpression(
        operator=BinaryOperator.EQUALS,
        left=VariableReference("score"),
        right=Literal(points),
    )


def build_grading_module(default_score: int = 85, default_bonus: bool = True) -> Module:
    """
    A module with one named-output function, built from objects.

    grade() picks a grade with an if chain; the 85 branch runs a sequence
    whose nested conditional sets the message.
    """
    grade_logic = IfChain(
        clauses=(
            ChainClause(
                condition=_score_is(100),
                result=SetOutputs(fields=(
                    ("grade", Literal("A+")),
                    ("passed", Literal(True)),
                    ("message", Literal("Perfect!")),
                )),
            ),
            ChainClause(
                condition=_score_is(85),
                result=Sequence(items=(
                    SetOutputs(fields=(("grade", Literal("B+")), ("passed", Literal(True)))),
                    Conditional(
                        condition=VariableReference("bonus"),
                        then_branch=SetOutputs(fields=(("message", Literal("Great with bonus!")),)),
                        else_branch=SetOutputs(fields=(("message", Literal("Great job!")),)),
                    ),
                )),
            ),
        ),
        else_branch=SetOutputs(fields=(
            ("grade", Literal("F")),
            ("passed", Literal(False)),
            ("message", Concat(values=(Literal("Keep trying! Score: "), VariableReference("score")))),
        )),
    )

    return Module(
        name="grading",
        description="Example grading rules",
        functions={
            "grade": FunctionDefinition(
                logic=grade_logic,
                description="Grade a score",
                inputs={
                    "score": InputDefinition(type="number", default=default_score, has_default=True),
                    "bonus": InputDefinition(type="boolean", default=default_bonus, has_default=True),
                },
                output=NamedOutputs(fields={
                    "grade": "string",
                    "passed": "boolean",
                    "message": "string",
                }),
            ),
        },
    )
