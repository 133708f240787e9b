from typing import Optional, List
from datetime import datetime
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy import select, func
from contextlib import asynccontextmanager

from ringside.config import Config
from ringside.database.models import (
    Base, Company, Wrestler, Venue, Show, Championship, TitleReign,
    ShowType, ShowStatus, WrestlingStyle, Gender, ChampionshipWeight
)
from ringside.utils.exceptions import PreconditionViolationError
from ringside.utils.logger import setup_logger

# (name, location, capacity, rental_cost, prestige)
DEFAULT_VENUES = [
    ("Madison Square Garden", "New York, NY, USA", 20000, 50000, 95),
    ("Staples Center", "Los Angeles, CA, USA", 18000, 45000, 90),
    ("AllState Arena", "Chicago, IL, USA", 16000, 35000, 85),
    ("Wells Fargo Center", "Philadelphia, PA, USA", 17000, 32000, 80),
    ("Tokyo Dome", "Tokyo, Japan", 55000, 65000, 95),
    ("Korakuen Hall", "Tokyo, Japan", 1800, 5000, 85),
    ("Hammerstein Ballroom", "New York, NY, USA", 2200, 12000, 75),
    ("Wembley Stadium", "London, UK", 90000, 100000, 95),
    ("Arena México", "Mexico City, Mexico", 16500, 20000, 90),
    ("Rogers Centre", "Toronto, ON, Canada", 53000, 60000, 85),
    ("Barclays Center", "Brooklyn, NY, USA", 16000, 40000, 80),
    ("Arena Ciudad de México", "Mexico City, Mexico", 22000, 25000, 75),
    ("Ryōgoku Kokugikan", "Tokyo, Japan", 11000, 20000, 85),
    ("Alamodome", "San Antonio, TX, USA", 64000, 70000, 80),
    ("Prudential Center", "Newark, NJ, USA", 17000, 30000, 75),
    ("Hammerstein Center", "Cleveland, OH, USA", 9000, 15000, 60),
    ("The Hydro", "Glasgow, Scotland, UK", 13000, 25000, 70),
    ("Guangzhou Gymnasium", "Guangzhou, China", 10000, 18000, 65),
    ("Saitama Super Arena", "Saitama, Japan", 22000, 30000, 80),
    ("Sydney Super Dome", "Sydney, Australia", 21000, 35000, 75),
    ("ECW Arena", "Philadelphia, PA, USA", 1300, 3000, 70),
    ("The Cockpit", "Leeds, UK", 800, 1500, 55),
    ("Electric Ballroom", "London, UK", 1500, 4000, 60),
    ("Civic Center", "Atlanta, GA, USA", 6000, 10000, 65),
    ("Recreation Center", "Tampa, FL, USA", 3500, 6000, 50),
]

class Database:
    def __init__(self, database_url: Optional[str] = None):
        self.logger = setup_logger(__name__)
        self.database_url = database_url
        self.engine = None
        self.async_session = None

    async def initialize(self, seed_defaults: bool = True):
        """Initialize the database connection and create tables"""
        self.logger.info("Initializing database...")
        Config.validate()

        # Convert sqlite URL to async if needed
        database_url = Config.get_database_url(self.database_url)

        self.engine = create_async_engine(
            database_url,
            echo=Config.DEBUG,
            future=True
        )

        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        # Create all tables
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self.logger.info("Database initialized successfully")

        if seed_defaults:
            await self.initialize_default_data()

    async def initialize_default_data(self):
        """Seed the venue catalogue when no venues exist yet"""
        async with self.get_session() as session:
            result = await session.execute(select(func.count(Venue.id)))
            venue_count = result.scalar()

            if venue_count == 0:
                self.logger.info("Initializing default venues...")

                for name, location, capacity, rental_cost, prestige in DEFAULT_VENUES:
                    session.add(Venue(
                        name=name,
                        location=location,
                        capacity=capacity,
                        rental_cost=rental_cost,
                        prestige=prestige,
                        is_available=True
                    ))

                await session.commit()
                self.logger.info(f"Added {len(DEFAULT_VENUES)} default venues")

    @asynccontextmanager
    async def get_session(self):
        """Get a database session"""
        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    @asynccontextmanager
    async def transaction(self):
        """
        Create a transaction boundary for atomic operations.

        All operations within the context are committed together on success,
        or rolled back together on failure. Exceptions must be allowed to
        propagate out of the context for rollback to occur.

        Usage:
            async with db.transaction() as session:
                session.add(show)
                company.money += profit
                # Both writes commit together here
        """
        async with self.async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Close the database connection"""
        if self.engine:
            await self.engine.dispose()
            self.logger.info("Database connection closed")

    # Company operations
    async def get_company(self, company_id: int) -> Optional[Company]:
        async with self.get_session() as session:
            return await session.get(Company, company_id)

    async def create_company(self, name: str, location: str = '', **kwargs) -> Company:
        """Create a promotion with the configured starting money and popularity"""
        kwargs.setdefault('money', Config.STARTING_COMPANY_MONEY)
        kwargs.setdefault('popularity', Config.STARTING_COMPANY_POPULARITY)
        async with self.get_session() as session:
            company = Company(name=name, location=location, **kwargs)
            session.add(company)
            await session.commit()
            await session.refresh(company)
            return company

    # Wrestler operations
    async def get_wrestler(self, wrestler_id: int) -> Optional[Wrestler]:
        async with self.get_session() as session:
            return await session.get(Wrestler, wrestler_id)

    async def create_wrestler(self, name: str, style: WrestlingStyle = WrestlingStyle.ALL_ROUNDER,
                              gender: Gender = Gender.MALE, company_id: Optional[int] = None,
                              **kwargs) -> Wrestler:
        """Create a wrestler; attributes and popularity are clamped into [1, 100]"""
        async with self.get_session() as session:
            wrestler = Wrestler(name=name, style=style, gender=gender, company_id=company_id, **kwargs)
            session.add(wrestler)
            await session.commit()
            await session.refresh(wrestler)
            return wrestler

    # Venue operations
    async def get_venue(self, venue_id: int) -> Optional[Venue]:
        async with self.get_session() as session:
            return await session.get(Venue, venue_id)

    async def get_all_venues(self, available_only: bool = True) -> List[Venue]:
        async with self.get_session() as session:
            query = select(Venue)
            if available_only:
                query = query.where(Venue.is_available == True)
            result = await session.execute(query.order_by(Venue.name))
            return result.scalars().all()

    async def get_venue_by_name(self, name: str) -> Optional[Venue]:
        """Get a venue by name (case insensitive)"""
        async with self.get_session() as session:
            result = await session.execute(
                select(Venue).where(func.lower(Venue.name) == func.lower(name))
            )
            return result.scalars().first()

    async def create_venue(self, name: str, location: str, capacity: int,
                           rental_cost: float = 0, prestige: int = 50, **kwargs) -> Venue:
        if capacity <= 0:
            raise ValueError(f"Venue capacity must be positive, got {capacity}")
        async with self.get_session() as session:
            venue = Venue(
                name=name, location=location, capacity=capacity,
                rental_cost=rental_cost, prestige=prestige, **kwargs
            )
            session.add(venue)
            await session.commit()
            await session.refresh(venue)
            return venue

    # Show operations
    async def get_show(self, show_id: int) -> Optional[Show]:
        """Get a show with its card, company and venue loaded"""
        async with self.get_session() as session:
            return await session.get(Show, show_id)

    async def create_show(self, company_id: int, venue_id: int, name: str, date: datetime,
                          show_type: ShowType = ShowType.WEEKLY_TV,
                          ticket_price: Optional[float] = None, **kwargs) -> Show:
        """Create a Draft show with an empty card"""
        if ticket_price is None:
            ticket_price = Config.DEFAULT_TICKET_PRICE
        if ticket_price < 0:
            raise ValueError(f"Ticket price cannot be negative, got {ticket_price}")
        async with self.get_session() as session:
            show = Show(
                company_id=company_id,
                venue_id=venue_id,
                name=name,
                date=date,
                show_type=show_type,
                status=ShowStatus.DRAFT,
                ticket_price=ticket_price,
                **kwargs
            )
            session.add(show)
            await session.commit()
            show_id = show.id

        return await self.get_show(show_id)

    # Championship operations
    async def get_championship(self, championship_id: int) -> Optional[Championship]:
        """Get a championship with its reigns, defenses and defended shows loaded"""
        async with self.get_session() as session:
            return await session.get(Championship, championship_id)

    async def create_championship(self, company_id: int, name: str, prestige: int = 50,
                                  weight: ChampionshipWeight = ChampionshipWeight.HEAVYWEIGHT,
                                  **kwargs) -> Championship:
        """
        Create a vacant championship.

        Champions are only ever crowned through ChampionshipOperations, which
        opens the reign alongside the holder.

        Raises:
            PreconditionViolationError: If a holder is passed in without a reign
        """
        if kwargs.get('current_holder_id') is not None:
            raise PreconditionViolationError(
                "a championship with a holder needs an open reign",
                f"create {name!r} vacant and crown wrestler {kwargs['current_holder_id']}"
            )
        async with self.get_session() as session:
            championship = Championship(
                company_id=company_id, name=name, prestige=prestige, weight=weight, **kwargs
            )
            session.add(championship)
            await session.commit()
            championship_id = championship.id

        return await self.get_championship(championship_id)

    async def get_championships_held_by(self, wrestler_id: int) -> List[Championship]:
        """Championships with at least one reign, open or closed, by this wrestler"""
        async with self.get_session() as session:
            query = (
                select(Championship)
                .where(Championship.reigns.any(TitleReign.holder_id == wrestler_id))
                .order_by(Championship.prestige.desc())
            )
            result = await session.execute(query)
            return result.scalars().all()
