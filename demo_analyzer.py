"""
Demo: Run analyzer on the example specifications and output the report.
"""

from specmodel.analyzer import analyze_specifications
from specmodel.diagnostics import DiagnosticCollector
from specmodel.examples import add_cyclic_elements, build_example_specifications
from specmodel.log_config import setup_logging
from specmodel.serialization import specifications_to_yaml


def print_report(report, collector):
    """Pretty-print a SpecificationsReport."""
    print()
    print("=" * 70)
    print("SPECIFICATIONS ANALYSIS REPORT")
    print("=" * 70)
    print()

    print("📊 BASIC METRICS")
    print(f"  Namespaces:            {report.total_namespaces}")
    print(f"  Data Elements:         {report.total_elements}")
    print(f"  Entries:               {report.total_entries}")
    print(f"  Abstract:              {report.total_abstract}")
    print(f"  Groups:                {report.total_groups}")
    for ns, count in sorted(report.elements_per_namespace.items()):
        print(f"    {ns}: {count} element(s)")
    print()

    print("🔗 INHERITANCE")
    print(f"  Max Depth:             {report.max_inheritance_depth} ({report.deepest_element or '-'})")
    print(f"  Cyclic Elements:       {', '.join(sorted(report.cyclic_elements)) or 'None'}")
    print()

    print("📐 RESOLUTION")
    print(f"  Paths Resolved:        {report.resolved_paths}")
    print(f"  Failed Paths:          {report.failed_paths}")
    print(f"  Incomplete Elements:   {', '.join(sorted(report.incomplete_elements)) or 'None'}")
    for kind, count in sorted(report.diagnostics_by_kind.items()):
        print(f"    {kind}: {count}")
    print()

    if collector.has_any():
        print("🩺 DIAGNOSTICS")
        for d in sorted(set(collector.all()), key=str):
            print(f"  {d}")
        print()

    if report.warnings:
        print("⚠️  WARNINGS")
        for i, warning in enumerate(report.warnings, 1):
            print(f"  {i}. {warning}")
    else:
        print("✨ NO WARNINGS - Specifications look clean!")
    print()


if __name__ == "__main__":
    setup_logging()

    # Build example registry, with one broken chain for the report to find
    specs = build_example_specifications()
    add_cyclic_elements(specs, "shr.test")

    collector = DiagnosticCollector()
    report = analyze_specifications(specs, collector)

    print_report(report, collector)

    # Also save to YAML for inspection
    with open("example_specifications_output.yaml", "w") as f:
        f.write(specifications_to_yaml(specs))
    print("✅ Specifications exported to example_specifications_output.yaml")
