"""Deal pipeline module -- stage model, transition rules, and the kanban stage-transition engine.

Provides Pydantic schemas (Deal, Contact, Company, StageMove, MoveResult),
the fixed stage order and adjacency rule, the bounded move history, the
optimistic-update wrapper, and StageTransitionEngine which owns the working
set of deals for one board session.
"""
