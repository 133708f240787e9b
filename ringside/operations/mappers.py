"""
ORM row -> engine record conversion.

The engine never sees SQLAlchemy objects; operations load rows, convert them
here, run the pure computations and write the results back themselves.
"""

from typing import Dict, Iterable, Optional

from ringside.data_models.records import (
    ChampionshipRecord, CompanySnapshot, MatchParticipantEntry, MatchRecord,
    SegmentRecord, ShowCompletedEvent, ShowRecord, TitleDefense, TitleReign,
    VenueSnapshot, WrestlerAttributes, WrestlerSnapshot
)
from ringside.database.models import (
    Championship, Company, Segment, Show, ShowMatch, Venue, Wrestler
)


def _enum_value(value):
    return value.value if value is not None else None


def wrestler_snapshot(wrestler: Wrestler) -> WrestlerSnapshot:
    return WrestlerSnapshot(
        wrestler_id=wrestler.id,
        name=wrestler.name,
        style=_enum_value(wrestler.style),
        attributes=WrestlerAttributes(
            strength=wrestler.strength,
            agility=wrestler.agility,
            charisma=wrestler.charisma,
            technical=wrestler.technical
        ),
        popularity=wrestler.popularity,
        salary=wrestler.salary,
        company_id=wrestler.company_id
    )


def roster_snapshot(wrestlers: Iterable[Wrestler]) -> Dict[int, WrestlerSnapshot]:
    return {w.id: wrestler_snapshot(w) for w in wrestlers}


def venue_snapshot(venue: Venue) -> VenueSnapshot:
    return VenueSnapshot(
        venue_id=venue.id,
        name=venue.name,
        capacity=venue.capacity,
        rental_cost=venue.rental_cost,
        prestige=venue.prestige,
        location=venue.location,
        is_available=venue.is_available
    )


def company_snapshot(company: Company) -> CompanySnapshot:
    return CompanySnapshot(
        company_id=company.id,
        name=company.name,
        popularity=company.popularity,
        money=company.money
    )


def match_record(match: ShowMatch) -> MatchRecord:
    return MatchRecord(
        participants=[
            MatchParticipantEntry(wrestler_id=p.wrestler_id, is_winner=bool(p.is_winner), team=p.team)
            for p in match.participants
        ],
        position=match.position,
        match_type=_enum_value(match.match_type),
        match_id=match.id,
        championship_id=match.championship_id,
        is_championship_match=bool(match.is_championship_match),
        stipulation=match.stipulation,
        duration=match.duration,
        booked_outcome=_enum_value(match.booked_outcome),
        planned_quality=match.planned_quality,
        actual_quality=match.actual_quality,
        popularity_impact=match.popularity_impact or 0.0
    )


def segment_record(segment: Segment) -> SegmentRecord:
    return SegmentRecord(
        segment_type=_enum_value(segment.segment_type),
        wrestler_ids=segment.wrestler_ids,
        position=segment.position,
        segment_id=segment.id,
        description=segment.description,
        duration=segment.duration,
        planned_quality=segment.planned_quality,
        actual_quality=segment.actual_quality,
        popularity_impact=segment.popularity_impact or 0.0
    )


def show_record(show: Show) -> ShowRecord:
    return ShowRecord(
        show_id=show.id,
        name=show.name,
        show_type=_enum_value(show.show_type),
        status=_enum_value(show.status),
        ticket_price=show.ticket_price,
        company_id=show.company_id,
        venue_id=show.venue_id,
        matches=[match_record(m) for m in show.matches],
        segments=[segment_record(s) for s in show.segments],
        attendance=show.attendance,
        ticket_revenue=show.ticket_revenue,
        merchandise_revenue=show.merchandise_revenue,
        venue_rental_cost=show.venue_rental_cost,
        production_cost=show.production_cost,
        talent_cost=show.talent_cost,
        profit=show.profit,
        overall_rating=show.overall_rating,
        critic_rating=show.critic_rating,
        audience_satisfaction=show.audience_satisfaction
    )


def championship_record(championship: Championship) -> ChampionshipRecord:
    """Rebuild the in-memory lineage; raises PreconditionViolationError on a corrupt history"""
    history = []
    for reign in championship.reigns:
        history.append(TitleReign(
            holder=reign.holder_id,
            start_date=reign.start_date,
            won_from=reign.won_from_id,
            won_at=reign.won_at_show_id,
            end_date=reign.end_date,
            defense_count=reign.defense_count or 0,
            defenses=[
                TitleDefense(
                    against=d.against_id,
                    date=d.date,
                    quality=d.quality,
                    show_id=d.show_id,
                    defense_id=d.id
                )
                for d in reign.defenses
            ],
            reign_id=reign.id
        ))

    return ChampionshipRecord(
        championship_id=championship.id,
        name=championship.name,
        prestige=championship.prestige,
        company_id=championship.company_id,
        current_holder=championship.current_holder_id,
        title_history=history,
        defended_at=[link.show_id for link in championship.defended_at],
        last_defended=championship.last_defended
    )


def main_event_text(show: Show, names: Dict[int, str]) -> Optional[str]:
    """Main event line for the highest-positioned match, e.g. 'A vs. B → Winner: A'"""
    match = show.get_main_event()
    if match is None or not match.participants:
        return None
    participants = " vs. ".join(names.get(p.wrestler_id, f"#{p.wrestler_id}") for p in match.participants)
    winners = match.winner_ids
    winner = names.get(winners[0], f"#{winners[0]}") if winners else "No Winner"
    return f"{participants} → Winner: {winner}"


def show_completed_event(show: Show, names: Optional[Dict[int, str]] = None) -> ShowCompletedEvent:
    """Notifier payload for a completed show"""
    return ShowCompletedEvent(
        show_name=show.name,
        company_name=show.company.name if show.company else 'Unknown',
        venue_name=show.venue.name if show.venue else 'Unknown',
        venue_location=show.venue.location if show.venue else '',
        attendance=show.attendance or 0,
        capacity=show.venue.capacity if show.venue else 0,
        overall_rating=show.overall_rating or 0.0,
        critic_rating=show.critic_rating or 0.0,
        total_revenue=(show.ticket_revenue or 0) + (show.merchandise_revenue or 0),
        profit=show.profit or 0.0,
        main_event=main_event_text(show, names or {}),
        total_costs=(show.venue_rental_cost or 0) + (show.production_cost or 0) + (show.talent_cost or 0)
    )
