from datetime import date
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd

from ledger.aggregate import _get, coerce_amount, display_category

COLUMNS = ["id", "date", "type", "category", "amount", "description"]


def transactions_frame(transactions: Iterable[Any]) -> pd.DataFrame:
    rows = []
    for t in transactions:
        rows.append({
            "id": _get(t, "id"),
            "date": _get(t, "transaction_date") or _get(t, "date"),
            "type": str(_get(t, "type") or "").lower(),
            "category": display_category(_get(t, "category")),
            "amount": coerce_amount(_get(t, "amount")),
            "description": _get(t, "description") or "",
        })
    df = pd.DataFrame(rows, columns=COLUMNS)
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    df["amount"] = df["amount"].astype(float)
    return df


def monthly_flow(transactions: Iterable[Any], months: int = 12, today: Optional[date] = None) -> pd.DataFrame:
    """Income and expense per calendar month for the last ``months`` months.

    Returns a frame indexed by month label ('Jan 25') with ``income`` and
    ``expense`` columns; months without activity are zero.
    """
    end = pd.Timestamp(today or date.today()).to_period("M")
    periods = pd.period_range(end=end, periods=months, freq="M")
    df = transactions_frame(transactions).dropna(subset=["date"])

    if df.empty:
        income = pd.Series(np.zeros(len(periods)), index=periods)
        expense = pd.Series(np.zeros(len(periods)), index=periods)
    else:
        df = df.assign(month=df["date"].dt.to_period("M"))
        by_month = df.groupby(["month", "type"])["amount"].sum().unstack(fill_value=0.0)
        income = by_month.get("income", pd.Series(dtype=float)).reindex(periods, fill_value=0.0)
        expense = by_month.get("expense", pd.Series(dtype=float)).reindex(periods, fill_value=0.0)

    out = pd.DataFrame({"income": income.values, "expense": expense.values}, index=[p.strftime("%b %y") for p in periods])
    out.index.name = "month"
    return out


def summaries_frame(summaries: Iterable[Any]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Category": s.category,
                "Type": s.type,
                "Total": s.total_amount,
                "Count": s.count,
                "Share %": s.percentage,
            }
            for s in summaries
        ],
        columns=["Category", "Type", "Total", "Count", "Share %"],
    )


def usage_frame(usages: Iterable[Any]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Category": u.category,
                "Budget": u.amount,
                "Used": u.used,
                "Remaining": u.remaining,
                "Used %": u.percentage,
                "Warning": u.warning,
            }
            for u in usages
        ],
        columns=["Category", "Budget", "Used", "Remaining", "Used %", "Warning"],
    )
