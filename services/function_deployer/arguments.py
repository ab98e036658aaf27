"""
Application arguments.

Splits raw command line arguments into "--name=value" options and plain
arguments. The raw list is handed to deployed archives unchanged.
"""

from typing import Dict, List, Optional, Sequence, Set


class ApplicationArguments:
    """
    Parsed view of the arguments the process was started with.

    Example:
        ApplicationArguments(["--function.name=uppercase", "--debug", "input.txt"])
            option_names     → {"function.name", "debug"}
            non_option_args  → ["input.txt"]
    """

    def __init__(self, source_args: Optional[Sequence[str]] = None):
        self.source_args: List[str] = list(source_args or [])
        self._options: Dict[str, List[str]] = {}
        self._non_option_args: List[str] = []

        for arg in self.source_args:
            if arg.startswith("--") and len(arg) > 2:
                name, sep, value = arg[2:].partition("=")
                values = self._options.setdefault(name, [])
                if sep:
                    values.append(value)
            else:
                self._non_option_args.append(arg)

    @property
    def option_names(self) -> Set[str]:
        return set(self._options)

    def contains_option(self, name: str) -> bool:
        return name in self._options

    def get_option_values(self, name: str) -> Optional[List[str]]:
        """Values given for an option ([] for a bare flag, None if absent)."""
        values = self._options.get(name)
        return list(values) if values is not None else None

    @property
    def non_option_args(self) -> List[str]:
        return list(self._non_option_args)
