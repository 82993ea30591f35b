from services.players.directory import InMemoryPlayerDirectory, Player, PlayerDirectory

__all__ = ["Player", "PlayerDirectory", "InMemoryPlayerDirectory"]
