"""
Quiz domain services: scoring, streaks and the two attempt engines.

Everything here talks to persistence only through `quizcore.ports`,
keeping storage concerns out of the game mechanics.
"""
