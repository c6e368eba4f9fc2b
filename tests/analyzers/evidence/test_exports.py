"""Tests for source export evidence."""

from __future__ import annotations

import textwrap

import pytest

from repomanifest.analyzers.evidence.exports import extract_source_exports, is_public_export

SOURCE = textwrap.dedent(
    """
    /**
     * Creates an order for the customer.
     */
    export async function createOrder(input) {
      return input;
    }

    export const _internal = 1;
    export class OrderMock {}
    export default class OrdersService {}
    export interface OrderDto { id: string }
    export const id = 1;
    """
).lstrip("\n")


def test_extracts_public_exports_in_order() -> None:
    items = extract_source_exports("src/orders.ts", SOURCE)

    assert [item.name for item in items] == ["createOrder", "OrdersService", "OrderDto"]
    assert all(item.type == "source_export" for item in items)
    assert all(item.base_confidence == pytest.approx(0.6) for item in items)


def test_attaches_preceding_doc_block() -> None:
    create, service, _ = extract_source_exports("src/orders.ts", SOURCE)

    assert create.metadata == {
        "export_type": "function",
        "is_default": False,
        "doc": "Creates an order for the customer.",
    }
    assert create.line_number == 4
    assert "Creates an order" in create.code
    assert service.metadata == {"export_type": "class", "is_default": True}


def test_doc_block_outside_snippet_is_prepended() -> None:
    padding = "\n" * 5
    content = f"/** Calculates the invoice total. */{padding}export function invoiceTotal() {{}}\n"

    # Blank lines between block and export keep the block attached.
    (item,) = extract_source_exports("src/invoice.ts", content)

    assert item.metadata["doc"] == "Calculates the invoice total."
    assert item.code.startswith("/** Calculates the invoice total. */\n")


def test_doc_block_separated_by_code_is_not_attached() -> None:
    content = "/** Describes something else entirely. */\nconst a = 1;\nexport function total() {}\n"

    (item,) = extract_source_exports("src/a.ts", content)

    assert "doc" not in item.metadata


@pytest.mark.parametrize(
    ("name", "public"),
    [("createOrder", True), ("_hidden", False), ("id", False), ("UserStub", False), ("FixtureData", False)],
)
def test_is_public_export(name: str, public: bool) -> None:
    assert is_public_export(name) is public
