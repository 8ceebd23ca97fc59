"""ビルド完了時に表示するサマリーの整形ユーティリティ。"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Mapping

_SIZE_UNITS = "KMGTPEZY"


@dataclass(slots=True)
class RunSummary:
    """1 回のビルド実行の集計結果。"""

    count: int
    seconds: float
    peak_memory_bytes: int
    total_flaws: dict[str, int] = field(default_factory=dict)
    locales: tuple[str, ...] = ()

    @property
    def rate(self) -> float:
        if self.seconds <= 0:
            return float(self.count)
        return self.count / self.seconds

    def to_dict(self) -> dict[str, object]:
        return {
            "count": self.count,
            "seconds": round(self.seconds, 3),
            "rate": round(self.rate, 3),
            "peak_memory_bytes": self.peak_memory_bytes,
            "total_flaws": dict(sorted(self.total_flaws.items())),
            "locales": list(self.locales),
        }


def human_file_size(size: int) -> str:
    """バイト数を 1024 単位の読みやすい表記へ変換します。"""

    if size < 1024:
        return f"{size} B"
    exponent = min(int(math.log(size, 1024)), len(_SIZE_UNITS))
    value = size / 1024**exponent
    rounded = round(value)
    if rounded < 10:
        number = f"{value:.2f}"
    elif rounded < 100:
        number = f"{value:.1f}"
    else:
        number = str(rounded)
    return f"{number} {_SIZE_UNITS[exponent - 1]}B"


def format_duration(seconds: float) -> str:
    if seconds > 60:
        return f"{seconds / 60:.1f} minutes"
    return f"{seconds:.1f} seconds"


def format_total_flaws(total_flaws: Mapping[str, int], header: str = "Total_Flaws_Count") -> str:
    """flaw 種別ごとの件数表を生成します。件数が無ければ空文字列を返します。"""

    if not total_flaws:
        return ""
    longest_key = max(len(key) for key in total_flaws)
    counts = {key: f"{count:,}" for key, count in total_flaws.items()}
    widest_count = max(len(count) for count in counts.values())
    lines = [header]
    for key in sorted(total_flaws):
        lines.append(f"{key.ljust(longest_key + 1)} {counts[key].rjust(widest_count)}")
    return "\n".join(lines)


def format_summary(summary: RunSummary) -> list[str]:
    lines = [
        f"Built {summary.count:,} pages in {format_duration(summary.seconds)}, "
        f"at a rate of {summary.rate:.1f} documents per second."
    ]
    if summary.locales:
        lines.append(f"(only building locales: {', '.join(summary.locales)})")
    lines.append(f"Peak heap memory usage: {human_file_size(summary.peak_memory_bytes)}")
    flaws = format_total_flaws(summary.total_flaws)
    if flaws:
        lines.append(flaws)
    return lines
