# db/schema.py
"""
Tournament engine schema (MySQL 8, utf8mb4). One statement per entry, applied in order;
every one is CREATE ... IF NOT EXISTS, so applying them again is harmless.
"""

from __future__ import annotations

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS player_account (
      account_id        BIGINT UNSIGNED NOT NULL AUTO_INCREMENT,
      discord_user_id   BIGINT UNSIGNED NOT NULL,
      display_name      VARCHAR(128) NOT NULL,
      first_seen_at     DATETIME(6) NOT NULL DEFAULT CURRENT_TIMESTAMP(6),
      last_seen_at      DATETIME(6) NOT NULL DEFAULT CURRENT_TIMESTAMP(6),
      PRIMARY KEY (account_id),
      UNIQUE KEY uq_player_account_discord (discord_user_id)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
    """,
    """
    CREATE TABLE IF NOT EXISTS tournament (
      tournament_id     BIGINT UNSIGNED NOT NULL AUTO_INCREMENT,
      name              VARCHAR(128) NOT NULL,
      game_mode         VARCHAR(64) NOT NULL,
      status            ENUM('registration','ongoing','finished') NOT NULL DEFAULT 'registration',
      max_players       INT NOT NULL DEFAULT 16,
      current_round     INT NOT NULL DEFAULT 0,
      winner_id         BIGINT UNSIGNED NULL,
      created_by        BIGINT UNSIGNED NULL,
      created_at        DATETIME(6) NOT NULL DEFAULT CURRENT_TIMESTAMP(6),
      started_at        DATETIME(6) NULL,
      finished_at       DATETIME(6) NULL,
      updated_at        DATETIME(6) NOT NULL DEFAULT CURRENT_TIMESTAMP(6),
      PRIMARY KEY (tournament_id),
      KEY ix_tournament_status (status)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
    """,
    """
    CREATE TABLE IF NOT EXISTS tournament_participant (
      tournament_id     BIGINT UNSIGNED NOT NULL,
      user_id           BIGINT UNSIGNED NOT NULL,
      status            ENUM('registered','eliminated','winner') NOT NULL DEFAULT 'registered',
      joined_at         DATETIME(6) NOT NULL DEFAULT CURRENT_TIMESTAMP(6),
      seq               BIGINT UNSIGNED NOT NULL AUTO_INCREMENT,
      PRIMARY KEY (tournament_id, user_id),
      UNIQUE KEY uq_participant_seq (seq),
      CONSTRAINT fk_participant_tournament FOREIGN KEY (tournament_id) REFERENCES tournament (tournament_id),
      CONSTRAINT fk_participant_account FOREIGN KEY (user_id) REFERENCES player_account (account_id)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
    """,
    """
    CREATE TABLE IF NOT EXISTS tournament_match (
      match_id          BIGINT UNSIGNED NOT NULL AUTO_INCREMENT,
      tournament_id     BIGINT UNSIGNED NOT NULL,
      player1_id        BIGINT UNSIGNED NOT NULL,
      player2_id        BIGINT UNSIGNED NULL,
      player1_score     INT NULL,
      player2_score     INT NULL,
      winner_id         BIGINT UNSIGNED NULL,
      round_no          INT NOT NULL,
      phase             ENUM('round_robin','winners_bracket','losers_bracket','crossover_match') NOT NULL,
      status            ENUM('pending','finished') NOT NULL DEFAULT 'pending',
      source            ENUM('played','manual') NOT NULL DEFAULT 'played',
      played_at         DATETIME(6) NULL,
      created_at        DATETIME(6) NOT NULL DEFAULT CURRENT_TIMESTAMP(6),
      PRIMARY KEY (match_id),
      KEY ix_match_round_status (tournament_id, round_no, status),
      CONSTRAINT fk_match_tournament FOREIGN KEY (tournament_id) REFERENCES tournament (tournament_id)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
    """,
)
