from __future__ import annotations

from typing import Sequence

from ..model.portfolio import Asset, PortfolioStatistics


def calculate_statistics(assets: Sequence[Asset]) -> PortfolioStatistics:
    total = len(assets)
    derivatives = sum(1 for a in assets if a.parent_ip_id)
    return PortfolioStatistics(
        total_assets=total,
        root_assets=total - derivatives,
        derivatives=derivatives,
        licenses_issued=sum(a.licenses_issued or 0 for a in assets),
        total_royalties=sum(a.royalties_earned or 0 for a in assets),
    )
