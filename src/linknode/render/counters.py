"""Counting contexts - aggregate records into bins for size/color encoding."""

from __future__ import annotations

from collections.abc import Callable, Iterator

from linknode.models.records import Bundle
from linknode.render.colors import ColorManager

# Resolves a field of a record to its keys; returns None when the
# record's tablet does not have the field.
FieldResolver = Callable[[Bundle, str], "list[str] | None"]


class CountingContext:
    """
    Maps bin keys to the records that fall in them.

    Two counting modes:
    - ``count_by`` is None: each record counts once per bin
    - ``count_by`` names a field: a bin's total is the number of
      distinct values of that field among its records

    When ``color_by`` names a field, each bin also tracks totals per
    color bin (value of the color field) so that a dominant color can
    be derived.
    """

    def __init__(
        self,
        resolver: FieldResolver,
        colors: ColorManager,
        count_by: str | None = None,
        color_by: str | None = None,
        no_color: str = "[nocolor]",
    ) -> None:
        self.resolver = resolver
        self.colors = colors
        self.count_by = count_by
        self.color_by = color_by
        self.no_color = no_color

        self._bundles: dict[str, set[Bundle]] = {}
        self._values: dict[str, set[str]] = {}
        self._color_values: dict[str, dict[str, set[Bundle | str]]] = {}
        self._color_totals: dict[str, set[Bundle | str]] = {}
        self._maximum = 0.0

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------

    def _members(self, bundle: Bundle) -> list[Bundle | str]:
        """What a record contributes to a bin total."""
        if self.count_by is None:
            return [bundle]
        return list(self.resolver(bundle, self.count_by) or [])

    def _color_bins(self, bundle: Bundle) -> list[str]:
        keys = self.resolver(bundle, self.color_by) if self.color_by else None
        return keys or [self.no_color]

    def count(self, bundle: Bundle, bin_key: str) -> float:
        """Add a record to a bin.

        Returns:
            The bin's new total
        """
        self._bundles.setdefault(bin_key, set()).add(bundle)
        members = self._members(bundle)
        bin_members = self._values.setdefault(bin_key, set())
        bin_members.update(members)
        if len(bin_members) > self._maximum:
            self._maximum = float(len(bin_members))

        if self.color_by is not None:
            per_color = self._color_values.setdefault(bin_key, {})
            for cbin in self._color_bins(bundle):
                per_color.setdefault(cbin, set()).update(members)
                self._color_totals.setdefault(cbin, set()).update(members)
        return float(len(bin_members))

    def accumulate(self, source: str, into: str) -> None:
        """Merge one bin's contents into another."""
        if source not in self._bundles:
            return
        self._bundles.setdefault(into, set()).update(self._bundles[source])
        self._values.setdefault(into, set()).update(self._values[source])
        self._maximum = max(self._maximum, float(len(self._values[into])))
        for cbin, members in self._color_values.get(source, {}).items():
            self._color_values.setdefault(into, {}).setdefault(cbin, set()).update(members)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, bin_key: object) -> bool:
        return bin_key in self._bundles

    def bins(self) -> Iterator[str]:
        return iter(self._bundles)

    def bundles(self, bin_key: str) -> set[Bundle]:
        """Records that contributed to a bin (empty for unknown bins)."""
        return set(self._bundles.get(bin_key, ()))

    def all_bundles(self) -> set[Bundle]:
        """Every record counted in any bin."""
        result: set[Bundle] = set()
        for members in self._bundles.values():
            result |= members
        return result

    def total(self, bin_key: str) -> float:
        return float(len(self._values.get(bin_key, ())))

    def total_maximum(self) -> float:
        return self._maximum

    def total_normalized(self, bin_key: str) -> float:
        """Bin total divided by the largest bin total (0.0 when empty)."""
        if self._maximum == 0:
            return 0.0
        return self.total(bin_key) / self._maximum

    def total_for_color(self, bin_key: str, color_bin: str) -> float:
        return float(len(self._color_values.get(bin_key, {}).get(color_bin, ())))

    def color_bins(self) -> list[str]:
        """Color bins sorted by descending total."""
        return sorted(self._color_totals, key=lambda c: (-len(self._color_totals[c]), c))

    def bin_color(self, bin_key: str) -> str:
        """Representative color of a bin.

        A bin with a single color value takes that value's color; with
        no color field the color follows the bin total on a log scale;
        otherwise the bin is "multi".
        """
        per_color = self._color_values.get(bin_key, {})
        if len(per_color) == 1:
            return self.colors.color_for(next(iter(per_color)))
        if self.color_by is None:
            return self.colors.log_color(self.total(bin_key), self._maximum)
        return self.colors.multi

    def bins_sorted_by_count(self) -> list[str]:
        """Bin keys, ascending by total then key."""
        return sorted(self._bundles, key=lambda b: (self.total(b), b))

    def __len__(self) -> int:
        return len(self._bundles)
