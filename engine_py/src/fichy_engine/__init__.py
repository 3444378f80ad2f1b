"""
Fichy game engine: rooms, rounds, bets and settlement for the trivia betting game.
"""
