from dataclasses import dataclass

import pandas as pd


STATUS_ORDER = ["safe", "warning", "danger"]


@dataclass
class SessionSummary:
    status_breakdown: pd.DataFrame
    alert_counts: pd.DataFrame
    tick_count: int
    dropped_ticks: int
    mean_attention: float
    first_alert: str
    last_alert: str


class ReportGenerator:
    """Summarizes a session log produced by SessionLogger."""

    def __init__(self, df: pd.DataFrame):
        self.df = df

    def summarize(self) -> SessionSummary:
        ticks = self.df[self.df["event"] == "tick"] if not self.df.empty else self.df
        alerts = self.df[self.df["event"] == "alert"] if not self.df.empty else self.df

        if ticks.empty:
            breakdown = pd.DataFrame(columns=["status", "ticks", "share"])
            mean_attention = 0.0
            dropped = 0
        else:
            counts = ticks["status"].value_counts().reindex(STATUS_ORDER, fill_value=0)
            breakdown = pd.DataFrame(
                {"status": counts.index, "ticks": counts.values, "share": (counts / len(ticks)).round(4).values}
            )
            attention = pd.to_numeric(ticks["attention"], errors="coerce")
            mean_attention = round(float(attention.mean()), 2) if attention.notna().any() else 0.0
            dropped = int(pd.to_numeric(ticks["dropped"], errors="coerce").fillna(0).sum())

        if alerts.empty:
            alert_counts = pd.DataFrame(columns=["message", "type", "count"])
            first_alert = last_alert = ""
        else:
            alert_counts = (
                alerts.groupby(["message", "alert_type"]).size().reset_index(name="count")
                .rename(columns={"alert_type": "type"})
                .sort_values("count", ascending=False)
                .reset_index(drop=True)
            )
            first_alert = str(alerts.iloc[0]["timestamp"])
            last_alert = str(alerts.iloc[-1]["timestamp"])

        return SessionSummary(
            status_breakdown=breakdown,
            alert_counts=alert_counts,
            tick_count=len(ticks),
            dropped_ticks=dropped,
            mean_attention=mean_attention,
            first_alert=first_alert,
            last_alert=last_alert,
        )

    def export_excel(self, path: str):
        summary = self.summarize()
        with pd.ExcelWriter(path) as writer:
            self.df.to_excel(writer, sheet_name="Raw Log", index=False)
            summary.status_breakdown.to_excel(writer, sheet_name="Status Breakdown", index=False)
            summary.alert_counts.to_excel(writer, sheet_name="Alerts", index=False)
            meta = pd.DataFrame(
                [
                    {"metric": "ticks", "value": summary.tick_count},
                    {"metric": "dropped_ticks", "value": summary.dropped_ticks},
                    {"metric": "mean_attention", "value": summary.mean_attention},
                    {"metric": "first_alert", "value": summary.first_alert},
                    {"metric": "last_alert", "value": summary.last_alert},
                ]
            )
            meta.to_excel(writer, sheet_name="Summary", index=False)
