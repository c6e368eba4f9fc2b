"""Tests for the orphan test scanner."""

from __future__ import annotations

import textwrap

from repomanifest.analyzers.orphans import (
    count_linked_tests,
    has_annotation,
    related_source_path,
    scan_test_file,
)


def _annotated_test(gap: int) -> str:
    """An annotation ``gap`` lines above an ``it(...)`` declaration."""
    filler = ["// setup"] * (gap - 1)
    return "\n".join(["// @atom IA-001", *filler, "it('creates orders', () => {", "  expect(1).toBe(1);", "});"])


def test_annotation_exactly_lookback_lines_above_is_linked() -> None:
    content = _annotated_test(5)

    assert scan_test_file("orders.spec.ts", content, lookback=5) == []
    assert count_linked_tests(content, 5) == 1


def test_annotation_one_line_beyond_lookback_is_orphan() -> None:
    content = _annotated_test(6)

    orphans = scan_test_file("orders.spec.ts", content, lookback=5)

    assert [orphan.test_name for orphan in orphans] == ["creates orders"]
    assert orphans[0].line_number == 7
    assert count_linked_tests(content, 5) == 0


def test_annotation_on_declaration_line_counts() -> None:
    lines = ["test('x', () => {}); // @atom IA-42"]
    assert has_annotation(lines, 0, 0)


def test_orphan_captures_braced_body_and_full_source() -> None:
    content = textwrap.dedent(
        """
        describe('OrdersService', () => {
          it('totals lines', () => {
            const total = sum([1, 2]);
            expect(total).toBe(3);
          });
        });
        """
    ).lstrip("\n")

    orphans = scan_test_file("src/orders.spec.ts", content)

    assert len(orphans) == 1
    orphan = orphans[0]
    assert orphan.test_name == "OrdersService > totals lines"
    assert orphan.line_number == 2
    assert orphan.test_code.splitlines() == [
        "  it('totals lines', () => {",
        "    const total = sum([1, 2]);",
        "    expect(total).toBe(3);",
        "  });",
    ]
    assert orphan.test_source_code == content
    assert orphan.related_source_files == []


def test_nested_groups_are_joined_and_popped() -> None:
    content = textwrap.dedent(
        """
        describe('Cart', () => {
          describe('add', () => {
            it('adds item', () => {});
          });
          it('starts empty', () => {});
        });
        test('top level', () => {});
        """
    ).lstrip("\n")

    names = [orphan.test_name for orphan in scan_test_file("cart.test.ts", content)]

    assert names == ["Cart > add > adds item", "Cart > starts empty", "top level"]


def test_three_level_groups_qualify_names() -> None:
    content = textwrap.dedent(
        """
        describe('Checkout', () => {
          describe('payment', () => {
            describe('card', () => {
              it('declines expired card', () => {});
            });
            it('accepts wallet', () => {});
          });
          it('shows summary', () => {});
        });
        it('outside', () => {});
        """
    ).lstrip("\n")

    names = [orphan.test_name for orphan in scan_test_file("checkout.spec.ts", content)]

    assert names == [
        "Checkout > payment > card > declines expired card",
        "Checkout > payment > accepts wallet",
        "Checkout > shows summary",
        "outside",
    ]


def test_group_close_ignores_several_closers_on_one_line() -> None:
    content = textwrap.dedent(
        """
        describe('outer', () => {
          describe('inner', () => {
            it('a', () => {}); });
          it('b', () => {});
        });
        """
    ).lstrip("\n")

    names = [orphan.test_name for orphan in scan_test_file("x.spec.ts", content)]

    assert names == ["outer > inner > a", "outer > inner > b"]


def test_multi_line_test_closer_also_closes_the_group() -> None:
    # Any bare closing line pops, including the one ending a test body.
    content = textwrap.dedent(
        """
        describe('outer', () => {
          it('a', () => {
            expect(1).toBe(1);
          });
          it('b', () => {});
        });
        """
    ).lstrip("\n")

    names = [orphan.test_name for orphan in scan_test_file("x.spec.ts", content)]

    assert names == ["outer > a", "b"]


def test_python_tests_grouped_by_class() -> None:
    content = textwrap.dedent(
        """
        import pytest


        class TestInvoices:
            # @atom IA-007
            def test_issues_invoice(self):
                assert issue() is not None

            def test_voids_invoice(self):
                assert void() is True


        def test_module_level():
            assert True
        """
    ).lstrip("\n")

    orphans = scan_test_file("tests/test_invoices.py", content, lookback=2)

    assert [orphan.test_name for orphan in orphans] == [
        "TestInvoices > test_voids_invoice",
        "test_module_level",
    ]
    assert orphans[0].test_code.splitlines() == [
        "    def test_voids_invoice(self):",
        "        assert void() is True",
    ]
    assert count_linked_tests(content, 2, file_path="tests/test_invoices.py") == 1


def test_related_source_path() -> None:
    assert related_source_path("src/a.spec.ts") == "src/a.ts"
    assert related_source_path("test/app.e2e-spec.ts") == "test/app.ts"
    assert related_source_path("src/b.test.ts") == "src/b.ts"
    assert related_source_path("tests/test_a.py") is None
