"""
Seating allocation and assignment service
"""

import logging
import random
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, PersistenceFailure, PreconditionFailed
from app.models import FamilyMember, Table
from app.schemas.seating import COUPLE_MEMBER_IDS, SeatAssignment, SeatingResult, SeatingGroupSplit, TableUpsert
from app.services.repositories import SeatingRepo, WeddingRepo

logger = logging.getLogger(__name__)


# -------- Seatable guests --------

class CoupleSlot(str, Enum):
    FIRST = "first"
    SECOND = "second"


@dataclass(frozen=True)
class RealGuest:
    id: int


@dataclass(frozen=True)
class CoupleMember:
    """One of the two seats held by the hosting couple"""
    slot: CoupleSlot


SeatableGuest = Union[RealGuest, CoupleMember]

COUPLE = (CoupleMember(CoupleSlot.FIRST), CoupleMember(CoupleSlot.SECOND))

_COUPLE_NAME_SEPARATOR = re.compile(r"\s*&\s*|\s+(?:and|y)\s+", re.IGNORECASE)


def split_couple_names(couple_names: str) -> List[str]:
    """Split "Ana y Luis", "Alice AND Bob" or "Alice & Bob" into partner names"""
    return [part.strip() for part in _COUPLE_NAME_SEPARATOR.split(couple_names or "")]


def parse_guest_ref(guest_id: Union[int, str]) -> SeatableGuest:
    """Map a wire identifier onto a seatable guest"""
    if isinstance(guest_id, str):
        if guest_id in COUPLE_MEMBER_IDS:
            return COUPLE[COUPLE_MEMBER_IDS.index(guest_id)]
        try:
            guest_id = int(guest_id)
        except ValueError:
            raise NotFound(f"Guest {guest_id}")
    return RealGuest(id=guest_id)


# -------- Allocation --------

@dataclass
class TableSlot:
    """Working state of a table during allocation"""
    table_id: int
    capacity: int
    remaining: int
    guests: List[SeatableGuest] = field(default_factory=list)


@dataclass
class Allocation:
    placements: Dict[SeatableGuest, int]
    couple_table_id: Optional[int]
    unassigned: List[SeatableGuest]


def build_groups(members: Iterable[FamilyMember], couple_seated: bool) -> List[List[SeatableGuest]]:
    """Group confirmed guests by (family, seating group); add the couple if unseated"""
    groups: Dict[Tuple, List[SeatableGuest]] = {}
    for member in members:
        key = (member.family_id, member.seating_group or "default")
        groups.setdefault(key, []).append(RealGuest(id=member.id))

    result = list(groups.values())
    if not couple_seated:
        result.append(list(COUPLE))
    return result


def allocate(
    tables: Sequence[Tuple[int, int]],
    groups: Sequence[Sequence[SeatableGuest]],
    rng: Optional[random.Random] = None,
    couple_table_id: Optional[int] = None
) -> Allocation:
    """Randomised greedy packing of groups into tables.

    ``tables`` is a sequence of (table_id, capacity) in table-number order.
    Each group first tries to sit whole at the first fitting table of a
    freshly shuffled table list; failing that, its members are placed one
    by one in table order. The couple only ever sits whole: a couple
    member may only join the couple's table, and a couple that cannot fit
    there is left unassigned.
    """
    rng = rng or random.Random()

    slots = [
        TableSlot(
            table_id=table_id,
            capacity=capacity,
            remaining=capacity - len(COUPLE) if table_id == couple_table_id else capacity
        )
        for table_id, capacity in tables
    ]

    ordered_groups = [list(group) for group in groups]
    rng.shuffle(ordered_groups)

    placements: Dict[SeatableGuest, int] = {}
    unassigned: List[SeatableGuest] = []
    couple_slot: Optional[TableSlot] = next(
        (slot for slot in slots if slot.table_id == couple_table_id), None
    )

    for group in ordered_groups:
        # Phase 1: whole group
        shuffled = list(slots)
        rng.shuffle(shuffled)
        target = next((slot for slot in shuffled if slot.remaining >= len(group)), None)
        if target is not None:
            target.remaining -= len(group)
            for guest in group:
                target.guests.append(guest)
                placements[guest] = target.table_id
                if isinstance(guest, CoupleMember):
                    couple_slot = target
            continue

        # Phase 2: one guest at a time
        couple_seats: List[CoupleMember] = []
        for guest in group:
            if isinstance(guest, CoupleMember):
                candidates = [couple_slot] if couple_slot is not None else slots
            else:
                candidates = slots
            target = next((slot for slot in candidates if slot.remaining >= 1), None)
            if target is None:
                unassigned.append(guest)
                continue
            target.remaining -= 1
            target.guests.append(guest)
            placements[guest] = target.table_id
            if isinstance(guest, CoupleMember):
                couple_slot = target
                couple_seats.append(guest)

        couple_in_group = [guest for guest in group if isinstance(guest, CoupleMember)]
        if couple_in_group and len(couple_seats) < len(couple_in_group):
            # The couple shares one table; release a partial placement
            for guest in couple_seats:
                couple_slot.remaining += 1
                couple_slot.guests.remove(guest)
                del placements[guest]
                unassigned.append(guest)
            couple_slot = None

    return Allocation(
        placements=placements,
        couple_table_id=couple_slot.table_id if couple_slot is not None else None,
        unassigned=unassigned,
    )


class SeatingService:
    """Service for seating arrangement operations"""

    @staticmethod
    def random_assignment(db: Session, wedding_id: int, rng: Optional[random.Random] = None) -> SeatingResult:
        """Reseat every confirmed guest (and the unseated couple) at random"""
        wedding = WeddingRepo.require(db, wedding_id)

        tables = SeatingRepo.list_tables(db, wedding_id)
        if not tables:
            raise PreconditionFailed("No tables configured")

        confirmed = SeatingRepo.list_confirmed_guests(db, wedding_id)
        groups = build_groups(confirmed, couple_seated=wedding.couple_table_id is not None)

        allocation = allocate(
            [(table.id, table.capacity) for table in tables],
            groups,
            rng=rng,
            couple_table_id=wedding.couple_table_id
        )

        try:
            for member in confirmed:
                member.table_id = allocation.placements.get(RealGuest(id=member.id))
            wedding.couple_table_id = allocation.couple_table_id
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Random seating failed for wedding {wedding_id}")
            raise PersistenceFailure("Failed to perform random assignment") from e

        unassigned_count = len(allocation.unassigned)
        result = SeatingResult(
            assigned_count=len(confirmed) + len(COUPLE) - unassigned_count,
            unassigned_count=unassigned_count,
        )
        logger.info(
            f"Random seating for wedding {wedding_id}: "
            f"{result.assigned_count} assigned, {result.unassigned_count} unassigned"
        )
        return result

    @staticmethod
    def manual_assignment(db: Session, wedding_id: int, assignments: Sequence[SeatAssignment]) -> int:
        """Apply explicit seats in one transaction, without capacity checks"""
        wedding = WeddingRepo.require(db, wedding_id)

        try:
            couple_done = False
            for assignment in assignments:
                if assignment.table_id is not None and SeatingRepo.get_table(db, wedding_id, assignment.table_id) is None:
                    raise NotFound(f"Table {assignment.table_id}")

                guest = parse_guest_ref(assignment.guest_id)
                if isinstance(guest, CoupleMember):
                    if not couple_done:
                        wedding.couple_table_id = assignment.table_id
                        couple_done = True
                    continue

                member = SeatingRepo.get_guest(db, wedding_id, guest.id)
                if member is None:
                    raise NotFound(f"Guest {guest.id}")
                member.table_id = assignment.table_id

            db.commit()
        except NotFound:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Manual seating failed for wedding {wedding_id}")
            raise PersistenceFailure("Failed to update seating assignments") from e

        return len(assignments)

    @staticmethod
    def get_seating_plan(db: Session, wedding_id: int) -> Dict:
        """Tables with their guests, unassigned confirmed guests and stats"""
        wedding = WeddingRepo.require(db, wedding_id)
        tables = SeatingRepo.list_tables(db, wedding_id)
        confirmed = SeatingRepo.list_confirmed_guests(db, wedding_id)

        names = split_couple_names(wedding.couple_names)
        couple_members = [
            {
                "id": wire_id,
                "name": names[index] if index < len(names) and names[index] else f"Partner {index + 1}",
                "family_name": wedding.couple_names,
                "is_couple": True,
            }
            for index, wire_id in enumerate(COUPLE_MEMBER_IDS)
        ]

        def guest_info(member: FamilyMember) -> Dict:
            return {
                "id": member.id,
                "name": member.name,
                "family_id": member.family_id,
                "family_name": member.family.name,
                "seating_group": member.seating_group,
                "is_couple": False,
            }

        table_data = []
        for table in tables:
            guests = [guest_info(m) for m in table.assigned_guests if m.attending]
            if wedding.couple_table_id == table.id:
                guests.extend(couple_members)
            table_data.append({
                "id": table.id,
                "number": table.number,
                "name": table.name,
                "capacity": table.capacity,
                "assigned_guests": guests,
            })

        unassigned = [guest_info(m) for m in confirmed if m.table_id is None]
        if wedding.couple_table_id is None:
            unassigned.extend(couple_members)

        return {
            "tables": table_data,
            "unassigned_guests": unassigned,
            "stats": {
                "total_guests": SeatingRepo.count_guests(db, wedding_id) + len(COUPLE),
                "confirmed_guests": len(confirmed) + len(COUPLE),
                "total_seats": sum(table.capacity for table in tables),
                "assigned_seats": sum(1 for m in confirmed if m.table_id is not None)
                + (len(COUPLE) if wedding.couple_table_id else 0),
            },
        }

    @staticmethod
    def upsert_tables(
        db: Session,
        wedding_id: int,
        tables: Sequence[TableUpsert],
        delete_ids: Sequence[int] = ()
    ) -> List[Table]:
        """Create/update tables; deleted tables lose their guests first"""
        wedding = WeddingRepo.require(db, wedding_id)

        try:
            for table_id in delete_ids:
                table = SeatingRepo.get_table(db, wedding_id, table_id)
                if table is None:
                    continue
                for member in list(table.assigned_guests):
                    member.table_id = None
                if wedding.couple_table_id == table.id:
                    wedding.couple_table_id = None
                db.flush()
                db.delete(table)

            result = []
            for data in tables:
                if data.id is not None:
                    table = SeatingRepo.get_table(db, wedding_id, data.id)
                    if table is None:
                        raise NotFound(f"Table {data.id}")
                    table.number = data.number
                    table.name = data.name or None
                    table.capacity = data.capacity
                else:
                    table = Table(
                        wedding_id=wedding_id,
                        number=data.number,
                        name=data.name or None,
                        capacity=data.capacity
                    )
                    db.add(table)
                result.append(table)

            db.commit()
        except NotFound:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Updating tables failed for wedding {wedding_id}")
            raise PersistenceFailure("Failed to update tables") from e

        for table in result:
            db.refresh(table)
        return result

    @staticmethod
    def split_family(
        db: Session,
        wedding_id: int,
        family_id: int,
        groups: Sequence[SeatingGroupSplit]
    ) -> int:
        """Name seating subgroups within a family so they can sit apart"""
        family = SeatingRepo.get_family(db, wedding_id, family_id)
        if family is None:
            raise NotFound("Family")

        members = {member.id: member for member in family.members}
        updated = 0
        try:
            for group in groups:
                for guest_id in group.guest_ids:
                    member = members.get(guest_id)
                    if member is None:
                        raise NotFound(f"Guest {guest_id}")
                    member.seating_group = group.name
                    updated += 1
            db.commit()
        except NotFound:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Splitting family {family_id} failed")
            raise PersistenceFailure("Failed to split family") from e

        return updated
