"""
Tests for seating allocation and assignment
"""

import random

import pytest
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.core.db import Base, build_engine
from app.core.exceptions import NotFound, PersistenceFailure, PreconditionFailed
from app.models import Family, FamilyMember, Table, Wedding
from app.schemas.seating import SeatAssignment, SeatingGroupSplit, TableUpsert
from app.services.seating_service import (
    COUPLE,
    CoupleMember,
    RealGuest,
    SeatingService,
    allocate,
    build_groups,
    parse_guest_ref,
    split_couple_names,
)

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_seating.db"
engine = build_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def wedding(db_session):
    """Wedding with tables of 2, 4 and 4 seats, a family of five and a pair"""
    wedding = Wedding(couple_names="Alice & Bob", wedding_date=datetime(2026, 6, 15))
    db_session.add(wedding)
    db_session.flush()

    for number, capacity in ((1, 2), (2, 4), (3, 4)):
        db_session.add(Table(wedding_id=wedding.id, number=number, capacity=capacity))

    smiths = Family(wedding_id=wedding.id, name="Smith")
    jones = Family(wedding_id=wedding.id, name="Jones")
    db_session.add_all([smiths, jones])
    db_session.flush()

    for i in range(5):
        db_session.add(FamilyMember(family_id=smiths.id, name=f"Smith {i + 1}", attending=True))
    for i in range(2):
        db_session.add(FamilyMember(family_id=jones.id, name=f"Jones {i + 1}", attending=True))
    # Declined and unanswered guests are never seated
    db_session.add(FamilyMember(family_id=jones.id, name="Jones Declined", attending=False))
    db_session.add(FamilyMember(family_id=jones.id, name="Jones Unknown", attending=None))

    db_session.commit()
    db_session.refresh(wedding)
    return wedding

def _occupancy(db_session, wedding):
    counts = {table.id: 0 for table in wedding.tables}
    for member in db_session.query(FamilyMember).filter(FamilyMember.attending.is_(True)).all():
        if member.table_id is not None:
            counts[member.table_id] += 1
    if wedding.couple_table_id is not None:
        counts[wedding.couple_table_id] += 2
    return counts

# -------- Pure allocation --------

def test_oversized_group_is_split_in_table_order():
    guests = [RealGuest(id=i) for i in range(1, 6)]
    allocation = allocate([(10, 2), (20, 4)], [guests], rng=random.Random(1))

    assert [allocation.placements[g] for g in guests] == [10, 10, 20, 20, 20]
    assert allocation.unassigned == []
    assert allocation.couple_table_id is None

def test_group_that_fits_sits_together():
    group = [RealGuest(id=1), RealGuest(id=2), RealGuest(id=3)]
    for seed in range(20):
        allocation = allocate([(1, 2), (2, 4), (3, 4)], [group], rng=random.Random(seed))
        assert len({allocation.placements[g] for g in group}) == 1
        assert allocation.placements[group[0]] in (2, 3)

def test_couple_is_never_split():
    allocation = allocate([(1, 1), (2, 1)], [list(COUPLE)], rng=random.Random(0))

    assert allocation.placements == {}
    assert allocation.couple_table_id is None
    assert set(allocation.unassigned) == set(COUPLE)

def test_table_holding_couple_keeps_two_seats():
    group = [RealGuest(id=1), RealGuest(id=2), RealGuest(id=3)]
    allocation = allocate([(1, 4)], [group], rng=random.Random(0), couple_table_id=1)

    assert allocation.placements == {group[0]: 1, group[1]: 1}
    assert allocation.unassigned == [group[2]]
    assert allocation.couple_table_id == 1

def test_same_seed_same_allocation():
    groups = [[RealGuest(id=i), RealGuest(id=i + 100)] for i in range(1, 8)] + [list(COUPLE)]
    tables = [(1, 4), (2, 4), (3, 6), (4, 2)]

    first = allocate(tables, groups, rng=random.Random(42))
    second = allocate(tables, groups, rng=random.Random(42))

    assert first.placements == second.placements
    assert first.couple_table_id == second.couple_table_id

def test_capacity_never_exceeded_for_any_seed():
    groups = [[RealGuest(id=f * 10 + i) for i in range(size)] for f, size in enumerate((5, 3, 3, 2, 1, 4))]
    groups.append(list(COUPLE))
    tables = [(1, 4), (2, 6), (3, 3), (4, 5)]
    total = sum(len(group) for group in groups)

    for seed in range(100):
        allocation = allocate(tables, groups, rng=random.Random(seed))
        load = {table_id: 0 for table_id, _ in tables}
        for table_id in allocation.placements.values():
            load[table_id] += 1
        assert all(load[table_id] <= capacity for table_id, capacity in tables)
        assert len(allocation.placements) + len(allocation.unassigned) == total

        couple_tables = {allocation.placements.get(member) for member in COUPLE}
        assert len(couple_tables) == 1
        assert couple_tables.pop() == allocation.couple_table_id

def test_parse_guest_ref():
    assert parse_guest_ref("couple-member-1") == COUPLE[0]
    assert parse_guest_ref("couple-member-2") == COUPLE[1]
    assert isinstance(parse_guest_ref("couple-member-2"), CoupleMember)
    assert parse_guest_ref(7) == RealGuest(id=7)
    assert parse_guest_ref("7") == RealGuest(id=7)
    with pytest.raises(NotFound):
        parse_guest_ref("someone")

@pytest.mark.parametrize("couple_names", ["Ana y Luis", "Ana AND Luis", "Ana and Luis", "Ana & Luis", "Ana&Luis"])
def test_split_couple_names(couple_names):
    assert split_couple_names(couple_names) == ["Ana", "Luis"]

def test_split_couple_names_keeps_words_containing_separators():
    assert split_couple_names("Andy & Yolanda") == ["Andy", "Yolanda"]
    assert split_couple_names("Solo") == ["Solo"]

# -------- Random assignment --------

def test_random_assignment_seats_everyone(db_session, wedding):
    for seed in range(25):
        result = SeatingService.random_assignment(db_session, wedding.id, rng=random.Random(seed))

        assert result.assigned_count + result.unassigned_count == 9
        db_session.refresh(wedding)
        occupancy = _occupancy(db_session, wedding)
        capacities = {table.id: table.capacity for table in wedding.tables}
        assert all(occupancy[t] <= capacities[t] for t in capacities)
        assert sum(occupancy.values()) == result.assigned_count

        # Reset so every seed starts from an empty plan
        wedding.couple_table_id = None
        for member in db_session.query(FamilyMember).all():
            member.table_id = None
        db_session.commit()

def test_random_assignment_ignores_unconfirmed_guests(db_session, wedding):
    SeatingService.random_assignment(db_session, wedding.id, rng=random.Random(3))

    declined = db_session.query(FamilyMember).filter(FamilyMember.attending.isnot(True)).all()
    assert len(declined) == 2
    assert all(member.table_id is None for member in declined)

def test_random_assignment_respects_seated_couple(db_session, wedding):
    table = wedding.tables[1]
    wedding.couple_table_id = table.id
    db_session.commit()

    result = SeatingService.random_assignment(db_session, wedding.id, rng=random.Random(5))
    db_session.refresh(wedding)

    assert wedding.couple_table_id == table.id
    assert _occupancy(db_session, wedding)[table.id] <= table.capacity
    assert result.assigned_count + result.unassigned_count == 9

def test_random_assignment_without_tables(db_session):
    wedding = Wedding(couple_names="Ann & Ben")
    db_session.add(wedding)
    db_session.commit()

    with pytest.raises(PreconditionFailed, match="No tables configured"):
        SeatingService.random_assignment(db_session, wedding.id)

def test_random_assignment_unknown_wedding(db_session):
    with pytest.raises(NotFound):
        SeatingService.random_assignment(db_session, 999)

# -------- Manual assignment --------

def test_manual_assignment_with_couple(db_session, wedding):
    guest = db_session.query(FamilyMember).filter(FamilyMember.name == "Smith 1").one()
    table = wedding.tables[0]

    updated = SeatingService.manual_assignment(db_session, wedding.id, [
        SeatAssignment(guest_id=guest.id, table_id=table.id),
        SeatAssignment(guest_id="couple-member-1", table_id=wedding.tables[2].id),
        SeatAssignment(guest_id="couple-member-2", table_id=wedding.tables[1].id),
    ])

    assert updated == 3
    db_session.refresh(guest)
    db_session.refresh(wedding)
    assert guest.table_id == table.id
    # The first couple entry decides where the couple sits
    assert wedding.couple_table_id == wedding.tables[2].id

def test_manual_assignment_unknown_table_rolls_back(db_session, wedding):
    guest = db_session.query(FamilyMember).filter(FamilyMember.name == "Smith 1").one()

    with pytest.raises(NotFound):
        SeatingService.manual_assignment(db_session, wedding.id, [
            SeatAssignment(guest_id=guest.id, table_id=wedding.tables[0].id),
            SeatAssignment(guest_id=guest.id, table_id=12345),
        ])

    db_session.refresh(guest)
    assert guest.table_id is None

def test_manual_assignment_unknown_guest(db_session, wedding):
    with pytest.raises(NotFound, match="Guest 4242"):
        SeatingService.manual_assignment(db_session, wedding.id, [
            SeatAssignment(guest_id=4242, table_id=wedding.tables[0].id),
        ])

def test_manual_assignment_unseats(db_session, wedding):
    guest = db_session.query(FamilyMember).filter(FamilyMember.name == "Jones 1").one()
    guest.table_id = wedding.tables[0].id
    db_session.commit()

    SeatingService.manual_assignment(db_session, wedding.id, [SeatAssignment(guest_id=guest.id, table_id=None)])

    db_session.refresh(guest)
    assert guest.table_id is None

def _failing_commit():
    raise SQLAlchemyError("disk I/O error")

def test_random_assignment_commit_failure_rolls_back(db_session, wedding, monkeypatch):
    monkeypatch.setattr(db_session, "commit", _failing_commit)

    with pytest.raises(PersistenceFailure, match="random assignment"):
        SeatingService.random_assignment(db_session, wedding.id, rng=random.Random(3))

    members = db_session.query(FamilyMember).all()
    assert all(member.table_id is None for member in members)
    db_session.refresh(wedding)
    assert wedding.couple_table_id is None

def test_manual_assignment_commit_failure_keeps_seats(db_session, wedding, monkeypatch):
    guest = db_session.query(FamilyMember).filter(FamilyMember.name == "Jones 1").one()
    first, second = wedding.tables[0].id, wedding.tables[1].id
    SeatingService.manual_assignment(db_session, wedding.id, [SeatAssignment(guest_id=guest.id, table_id=first)])

    monkeypatch.setattr(db_session, "commit", _failing_commit)
    with pytest.raises(PersistenceFailure):
        SeatingService.manual_assignment(db_session, wedding.id, [
            SeatAssignment(guest_id=guest.id, table_id=second),
            SeatAssignment(guest_id="couple-member-1", table_id=second),
        ])

    db_session.refresh(guest)
    db_session.refresh(wedding)
    assert guest.table_id == first
    assert wedding.couple_table_id is None

# -------- Plan, tables and family splits --------

def test_seating_plan_lists_couple_as_unassigned(db_session, wedding):
    plan = SeatingService.get_seating_plan(db_session, wedding.id)

    assert [t["number"] for t in plan["tables"]] == [1, 2, 3]
    unassigned_ids = [g["id"] for g in plan["unassigned_guests"]]
    assert "couple-member-1" in unassigned_ids
    assert "couple-member-2" in unassigned_ids
    assert len(unassigned_ids) == 9
    couple_names = [g["name"] for g in plan["unassigned_guests"] if g["is_couple"]]
    assert couple_names == ["Alice", "Bob"]
    assert plan["stats"]["total_seats"] == 10
    assert plan["stats"]["confirmed_guests"] == 9
    assert plan["stats"]["assigned_seats"] == 0

def test_seating_plan_names_each_partner(db_session, wedding):
    wedding.couple_names = "Ana y Luis"
    db_session.commit()

    plan = SeatingService.get_seating_plan(db_session, wedding.id)

    couple = [g for g in plan["unassigned_guests"] if g["is_couple"]]
    assert [g["name"] for g in couple] == ["Ana", "Luis"]
    assert couple[0]["family_name"] == "Ana y Luis"

def test_deleting_table_unseats_guests(db_session, wedding):
    table = wedding.tables[1]
    guest = db_session.query(FamilyMember).filter(FamilyMember.name == "Smith 2").one()
    guest.table_id = table.id
    wedding.couple_table_id = table.id
    db_session.commit()

    tables = SeatingService.upsert_tables(
        db_session, wedding.id,
        [TableUpsert(number=4, name="Garden", capacity=8)],
        delete_ids=[table.id]
    )

    db_session.refresh(guest)
    db_session.refresh(wedding)
    assert guest.table_id is None
    assert wedding.couple_table_id is None
    assert tables[0].name == "Garden"
    assert sorted(t.number for t in wedding.tables) == [1, 3, 4]

def test_update_unknown_table(db_session, wedding):
    with pytest.raises(NotFound):
        SeatingService.upsert_tables(db_session, wedding.id, [TableUpsert(id=999, number=1, capacity=2)])

def test_split_family_creates_separate_groups(db_session, wedding):
    smiths = db_session.query(Family).filter(Family.name == "Smith").one()
    ids = [member.id for member in smiths.members]

    updated = SeatingService.split_family(db_session, wedding.id, smiths.id, [
        SeatingGroupSplit(name="Parents", guest_ids=ids[:2]),
        SeatingGroupSplit(name="Kids", guest_ids=ids[2:]),
    ])

    assert updated == 5
    confirmed = db_session.query(FamilyMember).filter(FamilyMember.attending.is_(True)).all()
    groups = build_groups(confirmed, couple_seated=True)
    sizes = sorted(len(group) for group in groups)
    assert sizes == [2, 2, 3]

def test_split_family_rejects_foreign_guest(db_session, wedding):
    smiths = db_session.query(Family).filter(Family.name == "Smith").one()
    jones_member = db_session.query(FamilyMember).filter(FamilyMember.name == "Jones 1").one()

    with pytest.raises(NotFound):
        SeatingService.split_family(db_session, wedding.id, smiths.id, [
            SeatingGroupSplit(name="Mixed", guest_ids=[jones_member.id]),
        ])
