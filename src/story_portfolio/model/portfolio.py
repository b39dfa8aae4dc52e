from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..util.errors import InputError

Number = Union[int, float]


class NodeRole(str, Enum):
    ROOT = "root"
    DERIVATIVE = "derivative"
    LEAF = "leaf"


def _optional_number(data: Mapping[str, Any], key: str) -> Optional[Number]:
    value = data.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InputError(f"Asset field '{key}' must be a number")
    if isinstance(value, (int, float)):
        return value
    try:
        parsed = float(str(value))
    except ValueError as e:
        raise InputError(f"Asset field '{key}' must be a number: {value!r}") from e
    return int(parsed) if parsed.is_integer() else parsed


@dataclass
class Asset:
    """
    One registered IP asset.

    `child_ip_ids` and `derivative_count` are derived fields: they are rebuilt by
    `build_relationship_graph` and never trusted as input.
    """

    ip_id: str
    name: str = ""
    license_type: str = ""
    created_at: str = ""
    parent_ip_id: Optional[str] = None
    child_ip_ids: List[str] = field(default_factory=list)
    derivative_count: int = 0
    licenses_issued: Optional[Number] = None
    royalties_earned: Optional[Number] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_parent(self) -> bool:
        return bool(self.parent_ip_id)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Asset:
        if not isinstance(data, Mapping):
            raise InputError("Asset entries must be JSON objects")
        ip_id = data.get("ipId")
        if not isinstance(ip_id, str) or not ip_id:
            raise InputError("Asset entry is missing a non-empty 'ipId'")
        parent = data.get("parentIpId")
        metadata = data.get("metadata")
        return cls(
            ip_id=ip_id,
            name=str(data.get("name") or ""),
            license_type=str(data.get("licenseType") or ""),
            created_at=str(data.get("createdAt") or ""),
            parent_ip_id=str(parent) if parent else None,
            # childIpIds and derivativeCount are derived; build_relationship_graph rebuilds them.
            licenses_issued=_optional_number(data, "licensesIssued"),
            royalties_earned=_optional_number(data, "royaltiesEarned"),
            metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "ipId": self.ip_id,
            "name": self.name,
            "metadata": dict(self.metadata),
            "licenseType": self.license_type,
            "createdAt": self.created_at,
            "childIpIds": list(self.child_ip_ids),
            "derivativeCount": self.derivative_count,
        }
        if self.parent_ip_id:
            out["parentIpId"] = self.parent_ip_id
        if self.licenses_issued is not None:
            out["licensesIssued"] = self.licenses_issued
        if self.royalties_earned is not None:
            out["royaltiesEarned"] = self.royalties_earned
        return out


@dataclass(frozen=True)
class PortfolioStatistics:
    total_assets: int = 0
    root_assets: int = 0
    derivatives: int = 0
    licenses_issued: Number = 0
    total_royalties: Number = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalAssets": self.total_assets,
            "rootAssets": self.root_assets,
            "derivatives": self.derivatives,
            "licensesIssued": self.licenses_issued,
            "totalRoyalties": self.total_royalties,
        }


@dataclass(frozen=True)
class GraphNode:
    id: str
    label: str
    role: NodeRole
    style_class: str
    license_type: str = ""
    created_at: str = ""
    full_ip_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.role.value,
            "styleClass": self.style_class,
            "licenseType": self.license_type,
            "createdAt": self.created_at,
            "fullIpId": self.full_ip_id,
        }


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    edge_type: str = "derivative"

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "target": self.target, "type": self.edge_type}


@dataclass(frozen=True)
class GraphData:
    nodes: Tuple[GraphNode, ...] = ()
    edges: Tuple[GraphEdge, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


@dataclass
class PortfolioData:
    wallet_address: str
    network: str
    assets: List[Asset] = field(default_factory=list)
    statistics: PortfolioStatistics = field(default_factory=PortfolioStatistics)
    relationship_graph: GraphData = field(default_factory=GraphData)
    generated_at: str = ""
    mermaid_diagram: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "walletAddress": self.wallet_address,
            "network": self.network,
            "assets": [a.to_dict() for a in self.assets],
            "statistics": self.statistics.to_dict(),
            "relationshipGraph": self.relationship_graph.to_dict(),
            "generatedAt": self.generated_at,
        }
        if self.mermaid_diagram:
            out["mermaidDiagram"] = self.mermaid_diagram
        return out


def assets_from_dicts(items: Sequence[Mapping[str, Any]]) -> List[Asset]:
    return [Asset.from_dict(item) for item in items]
