"""
Team roster - Member rows of the team registration form.

The form always shows at least one member row. Rows can be added until
the row count reaches the event's maximum team size, so at most
team_size_max - 1 rows are addable beyond the initial one. The leader
is the registering user and is not entered as a row.
"""

from collections.abc import Iterable

from .exceptions import InvalidTeam


class TeamRoster:
    """Member name rows with the add/remove rules of the form."""

    def __init__(self, team_size_max: int) -> None:
        self.team_size_max = max(team_size_max, 1)
        self._rows: list[str] = [""]

    @classmethod
    def from_names(cls, names: Iterable[str], team_size_max: int) -> "TeamRoster":
        """
        Rebuild a roster from submitted names.

        Raises:
            InvalidTeam: If more names were submitted than the form allows
        """
        roster = cls(team_size_max)
        submitted = list(names)
        if len(submitted) > roster.team_size_max:
            raise InvalidTeam(
                f"A team can list at most {roster.team_size_max} members"
            )
        if submitted:
            roster._rows = submitted
        return roster

    @property
    def rows(self) -> list[str]:
        return list(self._rows)

    @property
    def can_add(self) -> bool:
        return len(self._rows) < self.team_size_max

    @property
    def can_remove(self) -> bool:
        return len(self._rows) > 1

    def add(self) -> bool:
        """Append a blank row; returns False when the add control is disabled."""
        if not self.can_add:
            return False
        self._rows.append("")
        return True

    def remove(self, index: int) -> bool:
        """Drop a row; returns False when the remove control is disabled."""
        if not self.can_remove:
            return False
        del self._rows[index]
        return True

    def set_name(self, index: int, name: str) -> None:
        self._rows[index] = name

    def member_names(self) -> list[str]:
        """Non-blank names, stripped, in row order."""
        return [name.strip() for name in self._rows if name and name.strip()]
