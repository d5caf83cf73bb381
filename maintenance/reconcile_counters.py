#!/usr/bin/python3
# -*- coding: utf-8 -*-

import argparse
import logging
import sys
from typing import List, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session
import yaml

from querycatalog.web.connections import Connections
from querycatalog.web.models.fork import Fork
from querycatalog.web.models.query import Query
from querycatalog.web.models.star import Star
from querycatalog.web.models.user import User


BATCH_SIZE = 300


def query_drift(session: Session) -> List[Tuple[int, int, int, int, int]]:
    """
    Find queries whose stars/forks counters disagree with their star and
    fork memberships.

    Star, unstar and fork write the membership and the counters in
    separate steps, so an interrupted request leaves them apart.

    Returns (query_id, stars, actual_stars, forks, actual_forks) rows.
    """
    actual_stars = select(func.count(Star.id)) \
        .where(Star.query_id == Query.id).scalar_subquery()
    actual_forks = select(func.count(Fork.id)) \
        .where(Fork.query_id == Query.id).scalar_subquery()
    return session.query(
        Query.id, Query.stars, actual_stars, Query.forks, actual_forks
    ).filter(
        or_(Query.stars != actual_stars, Query.forks != actual_forks)
    ).order_by(Query.id).all()


def user_drift(session: Session) -> List[Tuple[int, int, int, int, int]]:
    """Same as query_drift, for the stars/forks handed out by each user."""
    actual_stars = select(func.count(Star.id)) \
        .where(Star.user_id == User.id).scalar_subquery()
    actual_forks = select(func.count(Fork.id)) \
        .where(Fork.user_id == User.id).scalar_subquery()
    return session.query(
        User.id, User.stars, actual_stars, User.forks, actual_forks
    ).filter(
        or_(User.stars != actual_stars, User.forks != actual_forks)
    ).order_by(User.id).all()


def reconcile(session: Session, model, drift, dry_run: bool = False) -> int:
    """Set the counters of every drifted row to the membership counts.

    :param session: Session
    :param model: Query or User
    :param drift: rows as returned by query_drift or user_drift
    :param dry_run: bool
    :return: number of rows that were (or would have been) fixed
    """
    for count, (row_id, stars, actual_stars, forks, actual_forks) in enumerate(drift, 1):
        logging.info(
            "%s:%s stars %s -> %s, forks %s -> %s",
            model.__tablename__, row_id, stars, actual_stars, forks, actual_forks,
        )
        if not dry_run:
            session.execute(
                update(model)
                .where(model.id == row_id)
                .values(stars=actual_stars, forks=actual_forks)
            )
            if count % BATCH_SIZE == 0:
                session.commit()
    if not dry_run:
        session.commit()
    return len(drift)


def main() -> None:
    argparser = argparse.ArgumentParser(
        "reconcile_counters",
        description=(
            "Repair star and fork counters that drifted away from the "
            "star and fork memberships"
        ),
    )

    argparser.add_argument(
        "--config",
        help="Path to find the configuration file",
        default="../querycatalog/config.yaml",
    )
    argparser.add_argument(
        "--users",
        help="Also repair the aggregate counters on user records.",
        action="store_true",
    )
    argparser.add_argument(
        "--dry-run",
        help=(
            "Give this parameter if you don't want the script to actually"
            " make changes."
        ),
        action="store_true",
    )
    argparser.add_argument(
        "--debug",
        help=("Turn on maximum verbosity."),
        action="store_true",
    )

    args = argparser.parse_args()

    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(message)s",
        level=logging.DEBUG if args.dry_run or args.debug else logging.INFO,
    )
    with open(args.config, "r") as conf_file:
        try:
            config = yaml.safe_load(conf_file)
        except yaml.YAMLError as exc:
            logging.error(exc)
            sys.exit(2)

    conn = Connections(config)
    try:
        with conn.session() as session:
            fixed = reconcile(session, Query, query_drift(session), args.dry_run)
            logging.info("Reconciled %s queries", fixed)
            if args.users:
                fixed = reconcile(session, User, user_drift(session), args.dry_run)
                logging.info("Reconciled %s users", fixed)
    finally:
        conn.close_all()


if __name__ == "__main__":
    main()
