"""Progress tracking and reporting data models."""

from dataclasses import dataclass, field

from .game import Game


@dataclass(frozen=True)
class PipelineProgress:
    """Progress information emitted after each processed game."""
    user_name: str
    current: int
    total: int
    status: str

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return self.current * 100 // self.total


@dataclass
class PipelineReport:
    """Outcome of a full pipeline run."""
    not_found: list[Game] = field(default_factory=list)
    search_found: list[Game] = field(default_factory=list)
    processed: int = 0

    @property
    def is_clean(self) -> bool:
        return not self.not_found and not self.search_found

    def format_message(self) -> str:
        """Render the report as the human-readable summary shown at the end of a run."""
        message = ""
        if self.is_clean:
            message += "All grid images downloaded and overlays applied!\n\n"
        else:
            if self.search_found:
                message += (
                    f"{len(self.search_found)} images were found with a search "
                    "and may not be accurate:\n"
                )
                message += _itemize(self.search_found)
                message += "\n\n"
            if self.not_found:
                message += f"{len(self.not_found)} images could not be found anywhere:\n"
                message += _itemize(self.not_found)
                message += "\n\n"
        message += "Open Steam in grid view to see the results!"
        return message


def _itemize(games: list[Game]) -> str:
    return "".join(f"* {game.display_name} (steam id {game.game_id})\n" for game in games)
