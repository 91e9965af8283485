from __future__ import annotations

import logging
import re
from typing import Callable, Optional

from bs4 import BeautifulSoup, Tag

from ..models import AccountSnapshot, PlanDefinition, Transaction
from ..plans import KNOWN_PLANS
from .layout import PageLayout


logger = logging.getLogger(__name__)

_NBSP = "\u00a0"


def _clean_text(node: Tag) -> str:
    # The portal pads balances with non-breaking spaces.
    return node.get_text().replace(_NBSP, " ").strip()


def _cell_texts(row: Tag) -> list[str]:
    return [_clean_text(td) for td in row.find_all("td", recursive=False)]


def _cell(cells: list[str], index: int) -> str:
    return cells[index] if index < len(cells) else ""


def _has_aligned_value(row: Tag, align: str) -> bool:
    # Same rows as `tr:has(td div[align=...])`: the div must sit under a <td> inside this row.
    for div in row.find_all("div", attrs={"align": align}):
        parent = div.parent
        while parent is not None and parent is not row:
            if parent.name == "td":
                return True
            parent = parent.parent
    return False


_Handler = Callable[["_Balances", str], None]
_Matcher = Callable[[str], bool]


def _contains(marker: str) -> _Matcher:
    return lambda label: marker in label


class _Balances:
    def __init__(self) -> None:
        self.dining_dollars: Optional[str] = None
        self.lion_bucks: Optional[str] = None
        self.meal_swipes: Optional[str] = None
        self.guest_swipes: Optional[str] = None
        self.plan: Optional[PlanDefinition] = None


class AccountDataParser:
    """
    Turn the campus-card account page into an `AccountSnapshot`.

    Parsing is heuristic and forgiving: anything it cannot locate is left as `None`/empty.
    `parse()` only returns `None` when the document has no table rows at all, which callers treat
    as "this is not the account page".
    """

    def __init__(self, layout: Optional[PageLayout] = None) -> None:
        self.layout = layout or PageLayout()
        self._rules = self._build_rules()

    def _build_rules(self) -> list[tuple[_Matcher, _Handler]]:
        lay = self.layout

        def _lion_bucks(b: _Balances, value: str) -> None:
            b.lion_bucks = value

        def _guest(b: _Balances, value: str) -> None:
            b.guest_swipes = value

        def _dining(b: _Balances, value: str) -> None:
            b.dining_dollars = value

        def _meals_for(plan: PlanDefinition) -> _Handler:
            def _meals(b: _Balances, value: str) -> None:
                b.meal_swipes = value
                b.plan = plan

            return _meals

        def _unknown_plan_meals(b: _Balances, value: str) -> None:
            # Never overrides a row that matched a known plan.
            if b.meal_swipes is None:
                b.meal_swipes = value

        unknown_plan = re.compile(lay.unknown_plan_pattern)
        rules: list[tuple[_Matcher, _Handler]] = [
            (_contains(lay.lion_bucks_marker), _lion_bucks),
            (_contains(lay.guest_meals_marker), _guest),
            (_contains(lay.dining_dollars_marker), _dining),
        ]
        rules.extend((_contains(marker), _meals_for(plan)) for marker, plan in KNOWN_PLANS)
        rules.append((lambda label: unknown_plan.search(label) is not None, _unknown_plan_meals))
        return rules

    def parse(self, html: str) -> Optional[AccountSnapshot]:
        soup = BeautifulSoup(html or "", "html.parser")
        if soup.find("tr") is None:
            logger.warning("Account page has no table rows; treating it as unparseable.")
            return None

        balances = self._parse_balances(soup)
        transactions = self._parse_transactions(soup)

        logger.debug(
            "Parsed plan=%s meals=%s guest=%s dd=%s lion_bucks=%s transactions=%d",
            balances.plan.code if balances.plan else None,
            balances.meal_swipes,
            balances.guest_swipes,
            balances.dining_dollars,
            balances.lion_bucks,
            len(transactions),
        )

        return AccountSnapshot(
            dining_dollars=balances.dining_dollars,
            lion_bucks=balances.lion_bucks,
            meal_swipes=balances.meal_swipes,
            guest_swipes=balances.guest_swipes,
            plan=balances.plan,
            transactions=transactions,
        )

    def _parse_balances(self, soup: BeautifulSoup) -> _Balances:
        lay = self.layout
        out = _Balances()

        rows = [tr for tr in soup.find_all("tr") if _has_aligned_value(tr, lay.balance_value_align)]
        if len(rows) > lay.max_balance_rows:
            logger.debug(
                "Ignoring %d balance-shaped rows past the first %d.",
                len(rows) - lay.max_balance_rows,
                lay.max_balance_rows,
            )

        for row in rows[: lay.max_balance_rows]:
            cells = _cell_texts(row)
            label = _cell(cells, lay.label_cell_index)
            value = _cell(cells, lay.value_cell_index)
            if not label or not value:
                continue
            self._classify(out, label, value)
        return out

    def _classify(self, out: _Balances, label: str, value: str) -> None:
        for matches, apply in self._rules:
            if matches(label):
                apply(out, value)
                return
        logger.debug("Dropping unrecognized balance row label=%r", label)

    def _parse_transactions(self, soup: BeautifulSoup) -> list[Transaction]:
        lay = self.layout
        out: list[Transaction] = []
        for row in soup.select(lay.transaction_row_selector):
            cells = _cell_texts(row)
            out.append(
                Transaction(
                    date=_cell(cells, lay.transaction_date_index),
                    time=_cell(cells, lay.transaction_time_index),
                    description=_cell(cells, lay.transaction_description_index),
                    account=_cell(cells, lay.transaction_account_index),
                    amount=_cell(cells, lay.transaction_amount_index),
                )
            )
        return out
