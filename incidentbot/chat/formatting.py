"""Slack message text and Block Kit layouts for incident state."""

from datetime import datetime

from ..engine.stats import DailyReport, IncidentSummary
from ..models.incident import Incident, IncidentStatus
from ..models.oncall import OnCallSnapshot

STATUS_EMOJI = {
    IncidentStatus.OPEN: ":red_circle:",
    IncidentStatus.INVESTIGATING: ":large_yellow_circle:",
    IncidentStatus.RESOLVED: ":white_check_mark:",
    IncidentStatus.CLOSED: ":black_circle:",
}

INCIDENT_HELP = "\n".join([
    ":robot_face: *Incident Bot Commands*",
    "",
    "`/incident create <title> <P0|P1|P2|P3>` - Create new incident",
    "`/incident assign @user` - Assign incident to user",
    "`/incident resolve` - Mark incident as resolved",
    "`/incident status [id]` - Show incident status",
    "`/incident list [open|resolved|all]` - List incidents",
    "",
    "*Other Commands:*",
    "`/oncall who [team]` - Show on-call person",
    "`/metrics [today]` - Show metrics",
])

ONCALL_HELP = "\n".join([
    ":busts_in_silhouette: *On-Call Commands*",
    "",
    "`/oncall who [team]` - Show current on-call person",
    "`/oncall schedule [team]` - View rotation schedule",
])

CREATE_USAGE = ':x: Usage: `/incident create <title> <severity>`\nExample: `/incident create "Database down" P1`'


def format_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def mention(user_id: str | None) -> str:
    return f"<@{user_id}>" if user_id else "Unassigned"


def build_incident_blocks(incident: Incident) -> list[dict]:
    """Intro message posted into a freshly created incident channel."""
    return [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f":rotating_light: Incident {incident.id}", "emoji": True},
        },
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Title:*\n{incident.title}"},
                {"type": "mrkdwn", "text": f"*Severity:*\n{incident.severity.value}"},
                {"type": "mrkdwn", "text": f"*Status:*\n{incident.status.value}"},
                {"type": "mrkdwn", "text": f"*Assignee:*\n{mention(incident.assignee)}"},
            ],
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*Created:* {format_time(incident.created_at)}"},
        },
        {
            "type": "actions",
            "elements": [
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "Resolve"},
                    "style": "primary",
                    "action_id": "resolve_incident",
                    "value": incident.id,
                }
            ],
        },
    ]


def build_incident_status_blocks(incident: Incident) -> list[dict]:
    blocks = [
        {
            "type": "header",
            "text": {
                "type": "plain_text",
                "text": f"{STATUS_EMOJI[incident.status]} Incident {incident.id} - {incident.status.value.upper()}",
                "emoji": True,
            },
        },
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Title:*\n{incident.title}"},
                {"type": "mrkdwn", "text": f"*Severity:*\n{incident.severity.value}"},
                {"type": "mrkdwn", "text": f"*Assignee:*\n{mention(incident.assignee)}"},
                {"type": "mrkdwn", "text": f"*Created:*\n{format_time(incident.created_at)}"},
            ],
        },
    ]
    if incident.resolved_at is not None:
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"*Resolved:* {format_time(incident.resolved_at)}\n"
                    f"*Resolution Time:* {round(incident.resolution_minutes)} minutes"
                ),
            },
        })
    return blocks


def format_overview(summary: IncidentSummary) -> str:
    s = summary.by_status
    sev = summary.by_severity
    return "\n".join([
        ":bar_chart: *Incident Status Overview*",
        "",
        f"{STATUS_EMOJI[IncidentStatus.OPEN]} Open: {s['open']}",
        f"{STATUS_EMOJI[IncidentStatus.INVESTIGATING]} Investigating: {s['investigating']}",
        f"{STATUS_EMOJI[IncidentStatus.RESOLVED]} Resolved: {s['resolved']}",
        f"{STATUS_EMOJI[IncidentStatus.CLOSED]} Closed: {s['closed']}",
        "",
        "*By Severity:*",
        f"P0: {sev['P0']} | P1: {sev['P1']} | P2: {sev['P2']} | P3: {sev['P3']}",
        "",
        f":stopwatch: Avg Resolution Time: {round(summary.avg_resolution_minutes)} minutes",
    ])


def format_incident_list(label: str, incidents: list[Incident], limit: int) -> str:
    lines = [
        f"• {i.id} - {i.title} ({i.severity.value}) - {i.status.value}"
        for i in incidents[:limit]
    ]
    text = f":clipboard: *{label.capitalize()} Incidents:*\n\n" + "\n".join(lines)
    if len(incidents) > limit:
        text += "\n\n_...and more_"
    return text


def format_on_call(team: str, snapshot: OnCallSnapshot) -> str:
    escalation = ", ".join(mention(u) for u in snapshot.escalation) or "None"
    return "\n".join([
        f":busts_in_silhouette: *On-Call Information ({team})*",
        "",
        f":red_circle: Primary: {mention(snapshot.primary) if snapshot.primary else 'Not assigned'}",
        f":large_yellow_circle: Secondary: {mention(snapshot.secondary) if snapshot.secondary else 'Not assigned'}",
        f":telephone_receiver: Escalation: {escalation}",
    ])


def format_daily_metrics(period: str, report: DailyReport) -> str:
    return "\n".join([
        f":bar_chart: *Metrics ({period})*",
        "",
        f":chart_with_upwards_trend: Incidents Created: {report.created_today}",
        f":white_check_mark: Incidents Resolved: {report.resolved_today}",
        f":stopwatch: Avg Resolution Time: {round(report.avg_resolution_minutes_today)} minutes",
        f":rotating_light: Critical Incidents: {report.critical_today}",
        f":red_circle: Currently Active: {report.active_incidents}",
        "",
        ":bar_chart: Full metrics at: `/metrics` endpoint",
    ])
