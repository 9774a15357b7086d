"""
Demo Data

Sample users, teams, requests, services, statuses and activities for local
development and demos. Stats are recomputed from the seeded records rather
than written directly.
"""

from typing import Any, Dict, List

import structlog

from app.core.security import create_password_hash
from app.services.stats import refresh_stats

logger = structlog.get_logger(__name__)

# =============================================================================
# Sample Records
# =============================================================================

DEMO_USERS: List[Dict[str, Any]] = [
    {
        "username": "demo_user",
        "password": "password123",
        "email": "user@example.com",
        "phone": "(555) 123-4567",
        "full_name": "John Smith",
        "user_type": "user",
    },
    {
        "username": "admin",
        "password": "admin123",
        "email": "admin@example.com",
        "phone": "(555) 987-6543",
        "full_name": "Admin User",
        "user_type": "admin",
    },
    {
        "username": "responder",
        "password": "responder123",
        "email": "responder@example.com",
        "phone": "(555) 456-7890",
        "full_name": "Response Team Member",
        "user_type": "response_team",
    },
]

DEMO_TEAMS: List[Dict[str, Any]] = [
    {"name": "Team Alpha", "status": "available", "latitude": "40.7128", "longitude": "-74.0060"},
    {"name": "Team Bravo", "status": "busy", "latitude": "40.7282", "longitude": "-73.9942"},
    {"name": "Team Charlie", "status": "available", "latitude": "40.7300", "longitude": "-74.0200"},
]

# Each request is assigned to the team at the same position
DEMO_REQUESTS: List[Dict[str, Any]] = [
    {
        "status": "critical",
        "latitude": "40.7128",
        "longitude": "-74.0060",
        "description": "Critical emergency situation",
    },
    {
        "status": "in_progress",
        "latitude": "40.7282",
        "longitude": "-73.9942",
        "description": "In progress emergency",
    },
    {
        "status": "in_progress",
        "latitude": "40.7300",
        "longitude": "-74.0200",
        "description": "Another in progress emergency",
    },
]

DEMO_SERVICES: List[Dict[str, Any]] = [
    {
        "name": "City General Hospital",
        "type": "hospital",
        "address": "123 Main St, New York",
        "latitude": "40.7128",
        "longitude": "-74.0060",
        "rating": "4.5",
        "review_count": 428,
        "phone": "555-123-4567",
        "opening_hours": "Open 24/7",
        "distance": "1.2",
    },
    {
        "name": "Wellness Urgent Care",
        "type": "clinic",
        "address": "456 Broadway, New York",
        "latitude": "40.7282",
        "longitude": "-73.9942",
        "rating": "4.0",
        "review_count": 156,
        "phone": "555-234-5678",
        "opening_hours": "Open until 10 PM",
        "distance": "0.8",
    },
    {
        "name": "HealthPlus Pharmacy",
        "type": "pharmacy",
        "address": "789 5th Ave, New York",
        "latitude": "40.7300",
        "longitude": "-74.0200",
        "rating": "4.8",
        "review_count": 312,
        "phone": "555-345-6789",
        "opening_hours": "Open until 9 PM",
        "distance": "0.3",
    },
]

DEMO_SYSTEM_STATUSES: List[Dict[str, Any]] = [
    {"name": "Emergency Response", "status": "operational", "icon": "fa-ambulance"},
    {"name": "Location Services", "status": "operational", "icon": "fa-location-dot"},
    {"name": "Notifications", "status": "partial", "icon": "fa-bell"},
    {"name": "Medical Database", "status": "operational", "icon": "fa-database"},
]

DEMO_ACTIVITIES: List[Dict[str, Any]] = [
    {
        "title": "System maintenance completed",
        "description": "Yesterday, 11:30 PM",
        "icon": "fa-check",
        "icon_bg": "bg-primary-100",
    },
    {
        "title": "Updated hospital directory",
        "description": "3 days ago, 9:15 AM",
        "icon": "fa-hospital",
        "icon_bg": "bg-success-50",
    },
    {
        "title": "Emergency alert test conducted",
        "description": "5 days ago, 2:45 PM",
        "icon": "fa-exclamation-triangle",
        "icon_bg": "bg-danger-50",
    },
]


# =============================================================================
# Seeding
# =============================================================================

async def seed_demo_data(store) -> Dict[str, int]:
    """
    Populate ``store`` with the demo records.

    Intended for an empty store; seeding twice fails on the demo usernames.

    Returns:
        Number of records created per kind
    """
    users = []
    for fields in DEMO_USERS:
        users.append(await store.create_user({
            **fields,
            "password": create_password_hash(fields["password"]),
        }))
    demo_user = users[0]

    teams = [await store.create_response_team(fields) for fields in DEMO_TEAMS]

    requests = [
        await store.create_emergency_request({
            **fields,
            "user_id": demo_user.id,
            "response_team_id": team.id,
        })
        for fields, team in zip(DEMO_REQUESTS, teams)
    ]

    services = [await store.create_medical_service(fields) for fields in DEMO_SERVICES]
    statuses = [await store.create_system_status(fields) for fields in DEMO_SYSTEM_STATUSES]
    activities = [await store.create_activity(fields) for fields in DEMO_ACTIVITIES]

    await store.create_user_settings({"user_id": demo_user.id})
    await refresh_stats(store)

    created = {
        "users": len(users),
        "response_teams": len(teams),
        "emergency_requests": len(requests),
        "medical_services": len(services),
        "system_statuses": len(statuses),
        "activities": len(activities),
        "settings": 1,
    }
    logger.info("Demo data seeded", **created)
    return created
