"""
Demo: Run the bundled examples, analyze them and print the reports.
"""

from franka.analyzer import analyze_module
from franka.examples import build_grading_module, example_names, load_example
from franka.interpreter import execute, execute_function
from franka.model import Module
from franka.serialization import module_to_yaml


def print_report(report):
    """Pretty-print a ModuleReport."""
    print()
    print("=" * 70)
    print(f"MODULE ANALYSIS REPORT: {report.module_name}")
    print("=" * 70)
    print(f"  Functions:             {len(report.functions)}")
    print(f"  Total Expression Nodes:{report.total_nodes}")
    print()

    for name, function_report in report.functions.items():
        print(f"📐 {name}")
        print(f"  Max Depth:             {function_report.depth}")
        print(f"  Variables Referenced:  {sorted(function_report.variables_referenced)}")
        if function_report.fields_written:
            print(f"  Outputs Set:           {sorted(function_report.fields_written)}")
        print()

    if report.warnings:
        print("⚠️  WARNINGS")
        for i, warning in enumerate(report.warnings, 1):
            print(f"  {i}. {warning}")
    else:
        print("✨ NO WARNINGS - Module looks clean!")
    print()


if __name__ == "__main__":
    for name in example_names():
        document = load_example(name)
        if isinstance(document, Module):
            print_report(analyze_module(document))
            for function_name in document.function_names():
                print(f"  {function_name}() -> {execute_function(document, function_name)!r}")
        else:
            print(f"\n{document.name} -> {execute(document)!r}")

    grading = build_grading_module()
    print_report(analyze_module(grading))

    # Also save to YAML for inspection
    with open("example_grading_module.yaml", "w") as f:
        f.write(module_to_yaml(grading))
    print("✅ Module exported to example_grading_module.yaml")
