"""
Operations Layer

Business logic that composes database access with the pure simulation
engine. Operations load rows, convert them to plain records, run the engine
and persist the results in one transaction.

Each operations module focuses on a specific domain:
- ShowOperations: Card editing, show lifecycle and completion
- ChampionshipOperations: Title changes, defenses and lineage queries
- ShowRatingService: The in-memory show completion pipeline
"""
