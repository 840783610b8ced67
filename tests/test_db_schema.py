"""
tests/test_db_schema.py - DDL statements (no database needed).
"""

from db.schema import SCHEMA_STATEMENTS
from domain.enums import MatchPhase, ParticipantStatus, TournamentStatus


def test_one_create_per_table_in_dependency_order():
    statements = [s.strip() for s in SCHEMA_STATEMENTS]

    assert all(s.startswith("CREATE TABLE IF NOT EXISTS") for s in statements)
    # exactly one statement each; the driver executes them one at a time
    assert all(s.count(";") == 1 and s.endswith(";") for s in statements)
    names = [s.split()[5] for s in statements]
    assert names == ["player_account", "tournament", "tournament_participant", "tournament_match"]


def test_enum_columns_match_domain_enums():
    text = "\n".join(SCHEMA_STATEMENTS)

    for enum in (MatchPhase, TournamentStatus, ParticipantStatus):
        values = ",".join(f"'{e.value}'" for e in enum)
        assert f"ENUM({values})" in text
