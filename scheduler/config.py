"""
Football Value Scheduler Configuration

Defines cron schedules for the daily value pipeline.

All times are in UTC for cron compatibility. Fixture dates are UTC too:
API-Football reports kickoff times in UTC.

Schedule:
    - Settlement (06:00 UTC)
      Grades predictions once the previous day's late fixtures are final

    - Morning analysis (09:00 UTC)
      Picks for the day, after lineups and referee appointments settle

    - Pre-evening analysis (16:00 UTC)
      Fresh run with updated prices; supersedes the morning run

    - Late settlement sweep (23:30 UTC)
      Catches fixtures deferred earlier in the day
"""

from dataclasses import dataclass
from typing import Dict, List, Any


@dataclass
class ScheduleEntry:
    """A scheduled job configuration."""
    name: str
    cron: str  # UTC cron expression
    command: str
    description: str
    enabled: bool = True

    @property
    def hour(self) -> int:
        return int(self.cron.split()[1])

    @property
    def minute(self) -> int:
        return int(self.cron.split()[0])


# =============================================================================
# SCHEDULE
# =============================================================================

SCHEDULE: Dict[str, ScheduleEntry] = {
    'settlement': ScheduleEntry(
        name='football_value_settlement',
        cron='0 6 * * *',
        command='python -m scripts.daily_orchestrator --settle-only',
        description='Settlement: grade pending predictions',
    ),
    'morning': ScheduleEntry(
        name='football_value_morning',
        cron='0 9 * * *',
        command='python -m scripts.daily_orchestrator --analyze-only',
        description='Morning: value analysis for today\'s fixtures',
    ),
    'evening': ScheduleEntry(
        name='football_value_evening',
        cron='0 16 * * *',
        command='python -m scripts.daily_orchestrator --analyze-only',
        description='Evening: refreshed analysis with updated prices',
    ),
    'late_settlement': ScheduleEntry(
        name='football_value_late_settlement',
        cron='30 23 * * *',
        command='python -m scripts.daily_orchestrator --settle-only',
        description='Late sweep: settle fixtures deferred earlier',
    ),
}


def jobs_for_hour(hour: int) -> List[ScheduleEntry]:
    """Enabled jobs scheduled in the given UTC hour."""
    return [e for e in SCHEDULE.values() if e.enabled and e.hour == hour]


# =============================================================================
# CRONTAB FORMAT
# =============================================================================

def generate_crontab(project_dir: str = '/path/to/football-value-engine') -> str:
    """
    Generate crontab entries for local/server deployment.

    Returns:
        Crontab-formatted string
    """
    lines = [
        "# Football Value Pipeline Schedule",
        "# Times in UTC - adjust for local timezone if needed",
        "# Format: minute hour day-of-month month day-of-week command",
        "",
    ]

    for entry in SCHEDULE.values():
        if entry.enabled:
            lines.append(f"# {entry.description}")
            lines.append(f"{entry.cron} cd {project_dir} && {entry.command}")
            lines.append("")

    return "\n".join(lines)


def generate_railway_config() -> Dict[str, Any]:
    """Railway cron configuration for the enabled jobs."""
    return {
        'build': {
            'builder': 'NIXPACKS',
        },
        'deploy': {
            'numReplicas': 1,
            'sleepApplication': False,
            'restartPolicyType': 'ON_FAILURE',
        },
        'crons': [
            {
                'name': entry.name,
                'schedule': entry.cron,
                'command': entry.command,
            }
            for entry in SCHEDULE.values()
            if entry.enabled
        ],
    }


# =============================================================================
# CLI
# =============================================================================

if __name__ == '__main__':
    import argparse
    import json

    parser = argparse.ArgumentParser(description='Football Value Scheduler Configuration')
    parser.add_argument('--crontab', action='store_true', help='Generate crontab entries')
    parser.add_argument('--railway', action='store_true', help='Generate Railway config')

    args = parser.parse_args()

    if args.crontab:
        print(generate_crontab())
    elif args.railway:
        print(json.dumps(generate_railway_config(), indent=2))
    else:
        print("Football Value Schedule:")
        print("-" * 60)
        for entry in SCHEDULE.values():
            print(f"\n{entry.name}:")
            print(f"  Cron: {entry.cron} (UTC)")
            print(f"  Command: {entry.command}")
            print(f"  Description: {entry.description}")
            print(f"  Enabled: {entry.enabled}")
