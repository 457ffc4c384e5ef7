"""Resync every user's challenge points and rank.
Usage: python scripts/recompute_ranks.py

Useful after editing points or attempts directly in the database.
"""
import sys
import pathlib
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session, select
from aiclub.database import engine
from aiclub import models, repositories, services


def main() -> int:
    with Session(engine) as session:
        attempts = repositories.AttemptRepository(session)
        for user in session.exec(select(models.User)).all():
            user.challenge_points = attempts.total_best_score(user.id)
            session.add(user)
        session.commit()
        changed = services.RankingService(session).recompute_ranks()
    print(f'Ranks recomputed; {changed} changed')
    return 0


if __name__ == '__main__':
    sys.exit(main())
