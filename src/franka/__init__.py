"""
Franka: a small declarative expression language written in YAML.

A module document declares named functions, each with typed inputs, an
output contract and a logic tree. The package decodes such documents
into immutable expression trees and evaluates them:

    franka.serialization  -> documents in, Module / Program out
    franka.evaluator      -> expression tree + scope -> value + outputs
    franka.outputs        -> output contract checks and result shaping
    franka.interpreter    -> load, resolve, evaluate, shape
    franka.spec_runner    -> declarative test cases beside a program

ARCHITECTURAL GUARANTEE:
------------------------
Evaluation is pure. Nothing here does I/O except the file loaders in
franka.interpreter and franka.spec_runner.
"""

__version__ = "0.1.0"
