"""Plotly figures for the back-office dashboard."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from . import utils

STAT_LABELS = {
    "totalSavings": "Savings",
    "totalFd": "Fixed deposits",
    "totalRd": "Recurring deposits",
    "totalLoans": "Loans",
}

TREND_LABELS = {"savings": "Savings", "fd": "Fixed deposits", "rd": "Recurring deposits"}
PRODUCT_COLORS = {"Savings": "#5d8aa8", "Fixed deposits": "#e9c46a", "Recurring deposits": "#e5446d"}


def _empty_figure(message: str) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(
        text=message,
        showarrow=False,
        x=0.5,
        y=0.5,
        xref="paper",
        yref="paper",
        font=dict(size=14, color="#6c757d"),
    )
    fig.update_layout(margin=dict(l=0, r=0, t=20, b=20))
    return fig


def plot_transaction_history(transactions: pd.DataFrame) -> go.Figure:
    """Monthly credits against withdrawals for one account's history view.

    Expects the frame returned by :func:`backoffice.history.filter_transactions`.
    """

    df = utils.ensure_dataframe(transactions).copy()
    if df.empty or "posted_at" not in df:
        return _empty_figure("No transactions in range.")

    df["month"] = pd.to_datetime(df["posted_at"]).dt.to_period("M").dt.to_timestamp()
    df["signed"] = np.where(df["transactionType"] == "DEBIT", -df["amount"], df["amount"])

    monthly = (
        df.groupby("month", as_index=False)
        .agg(
            credited=("signed", lambda s: s[s > 0].sum()),
            debited=("signed", lambda s: -s[s < 0].sum()),
            net=("signed", "sum"),
        )
        .sort_values("month")
    )

    fig = go.Figure()
    fig.add_bar(name="Credited", x=monthly["month"], y=monthly["credited"], marker_color="#2a9d8f")
    fig.add_bar(name="Withdrawn", x=monthly["month"], y=-monthly["debited"], marker_color="#e76f51")
    fig.add_trace(
        go.Scatter(
            name="Net",
            x=monthly["month"],
            y=monthly["net"],
            mode="lines+markers",
            line=dict(color="#264653", width=2),
        )
    )
    fig.update_layout(
        barmode="relative",
        title="Monthly collection",
        yaxis_title="Amount",
        xaxis_title="Month",
        margin=dict(l=0, r=0, t=45, b=0),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig


def plot_loans_by_branch(loans: pd.DataFrame) -> go.Figure:
    df = utils.ensure_dataframe(loans)
    if df.empty or "branchName" not in df:
        return _empty_figure("No sanctioned loans to display.")

    totals = (
        df.assign(loanAmount=pd.to_numeric(df["loanAmount"], errors="coerce").fillna(0.0))
        .groupby("branchName", as_index=False)["loanAmount"]
        .sum()
        .sort_values("loanAmount", ascending=False)
    )
    fig = px.bar(
        totals,
        x="branchName",
        y="loanAmount",
        labels={"branchName": "Branch", "loanAmount": "Sanctioned amount"},
        title="Sanctioned amount by branch",
    )
    fig.update_layout(margin=dict(l=0, r=0, t=40, b=40))
    return fig


def plot_account_trends(points: Sequence[Mapping[str, object]]) -> go.Figure:
    """Monthly savings, FD and RD lines from the dashboard account-trends feed."""

    df = utils.ensure_dataframe(list(points))
    if df.empty or "name" not in df:
        return _empty_figure("No account activity to display.")

    fig = go.Figure()
    for key, label in TREND_LABELS.items():
        if key in df:
            fig.add_trace(
                go.Scatter(
                    name=label,
                    x=df["name"],
                    y=df[key],
                    mode="lines+markers",
                    line=dict(color=PRODUCT_COLORS[label], width=2),
                )
            )
    fig.update_layout(
        title="Account growth",
        yaxis_title="Amount",
        margin=dict(l=0, r=0, t=45, b=0),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig


def plot_loan_trends(points: Sequence[Mapping[str, object]]) -> go.Figure:
    df = utils.ensure_dataframe(list(points))
    if df.empty or "name" not in df:
        return _empty_figure("No loan activity to display.")

    fig = go.Figure()
    fig.add_bar(name="Disbursed", x=df["name"], y=df.get("loans", 0), marker_color="#e9c46a")
    fig.add_bar(name="Repaid", x=df["name"], y=df.get("repaid", 0), marker_color="#5d8aa8")
    fig.update_layout(
        barmode="group",
        title="Loan activity",
        yaxis_title="Amount",
        margin=dict(l=0, r=0, t=45, b=0),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    return fig


def _share_figure(points: Sequence[Mapping[str, object]], title: str, empty: str, *, hole: float) -> go.Figure:
    df = utils.ensure_dataframe(list(points))
    if df.empty or "value" not in df or not df["value"].sum():
        return _empty_figure(empty)

    fig = px.pie(df, names="name", values="value", hole=hole, title=title)
    fig.update_traces(textinfo="label+percent")
    fig.update_layout(margin=dict(l=0, r=0, t=40, b=0))
    return fig


def plot_account_distribution(points: Sequence[Mapping[str, object]]) -> go.Figure:
    return _share_figure(points, "Account distribution", "No accounts to display.", hole=0.0)


def plot_loan_types(points: Sequence[Mapping[str, object]]) -> go.Figure:
    return _share_figure(points, "Loan types", "No loans to classify.", hole=0.6)
