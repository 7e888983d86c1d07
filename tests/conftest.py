"""Shared fixtures."""

import pytest

GREETINGS_MODULE = """\
module:
  name: greetings
  description: Greeting functions
functions:
  hello:
    description: Say hello
    input:
      name:
        type: string
        default: World
    output:
      type: string
    logic:
      concat: ["Hello, ", {get: name}, "!"]
  profile:
    input:
      name: {type: string, default: Ada}
      admin: {type: boolean, default: false}
    output:
      label: {type: string}
      is_admin: {type: boolean}
    logic:
      - if: {get: admin}
        then: {set: {label: {uppercase: {get: name}}, is_admin: true}}
      - else: {set: {label: {get: name}, is_admin: false}}
"""


@pytest.fixture
def module_file(tmp_path):
    path = tmp_path / "greetings.yaml"
    path.write_text(GREETINGS_MODULE, encoding="utf-8")
    return path
