"""
Fixed fallback feed.

Served when no credentials are configured, when the CRM returns nothing,
and when a fetch cycle fails. Ids are stable; timestamps are relative to
the moment of the call so the feed always looks recent.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from config import to_iso8601
from models.activity import Activity


def get_mock_activities(now: Optional[datetime] = None) -> list[Activity]:
    """The five-record mock feed, newest first."""
    now = now or datetime.now(timezone.utc)

    def minutes_ago(minutes: int) -> str:
        return to_iso8601(now - timedelta(minutes=minutes))

    records = [
        {
            "id": "1",
            "type": "note",
            "content": "Kunden har begärt en offert på 3 nya servrar",
            "timestamp": minutes_ago(15),
            "user": {
                "id": "101",
                "name": "Maria Andersson",
                "avatar": "https://i.pravatar.cc/150?img=32",
            },
            "relatedTo": {"type": "customer", "id": "1001", "name": "Acme AB"},
        },
        {
            "id": "2",
            "type": "call",
            "content": (
                "Ringde Johan för att bekräfta mötet nästa vecka. "
                "Han planerar att ta med sin tekniska chef."
            ),
            "timestamp": minutes_ago(120),
            "user": {
                "id": "102",
                "name": "Erik Johansson",
                "avatar": "https://i.pravatar.cc/150?img=53",
            },
            "relatedTo": {"type": "customer", "id": "1002", "name": "Teknik Konsult AB"},
        },
        {
            "id": "3",
            "type": "message",
            "content": (
                "Någon som har kontaktuppgifter till Pernillas ersättare? "
                "Behöver komma i kontakt med dem idag!"
            ),
            "timestamp": minutes_ago(270),
            "user": {
                "id": "103",
                "name": "Lina Karlsson",
                "avatar": "https://i.pravatar.cc/150?img=5",
            },
        },
        {
            "id": "4",
            "type": "task",
            "content": "Skickat avtal till SignRight för signering av kunden",
            "timestamp": minutes_ago(480),
            "user": {"id": "104", "name": "Niklas Lundgren"},
            "relatedTo": {"type": "opportunity", "id": "2001", "name": "Service renewal Q2"},
        },
        {
            "id": "5",
            "type": "note",
            "content": (
                "Viktig notering: Alla kundens servrar måste uppgraderas innan "
                "årsskiftet på grund av säkerhetsskäl. Diskuteras på nästa möte."
            ),
            "timestamp": minutes_ago(60 * 12),
            "user": {
                "id": "105",
                "name": "Sofia Berg",
                "avatar": "https://i.pravatar.cc/150?img=25",
            },
            "relatedTo": {"type": "project", "id": "3001", "name": "IT Infrastructure Upgrade"},
        },
    ]
    return [Activity.model_validate(record) for record in records]
