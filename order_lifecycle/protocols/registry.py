"""Protocol -> adapter dispatch over process-long stateless adapters."""

from __future__ import annotations

from typing import Callable, Sequence

from order_lifecycle.core.domain.taxonomy import Protocol
from order_lifecycle.core.domain.types import AccountInfo
from order_lifecycle.core.ports.protocol_adapter import ProtocolAdapter
from order_lifecycle.protocols.dca import DcaAdapter
from order_lifecycle.protocols.kamino import KaminoAdapter
from order_lifecycle.protocols.limit_v1 import LimitV1Adapter
from order_lifecycle.protocols.limit_v2 import LimitV2Adapter

DCA_ADAPTER = DcaAdapter()
LIMIT_V1_ADAPTER = LimitV1Adapter()
LIMIT_V2_ADAPTER = LimitV2Adapter()
KAMINO_ADAPTER = KaminoAdapter()

_ADAPTERS: dict[Protocol, ProtocolAdapter] = {
    Protocol.DCA: DCA_ADAPTER,
    Protocol.LIMIT_V1: LIMIT_V1_ADAPTER,
    Protocol.LIMIT_V2: LIMIT_V2_ADAPTER,
    Protocol.KAMINO: KAMINO_ADAPTER,
}

_ORDER_PDA_EXTRACTORS: dict[Protocol, Callable[[Sequence[AccountInfo], str], str]] = {
    Protocol.DCA: DcaAdapter.extract_order_pda,
    Protocol.LIMIT_V1: LimitV1Adapter.extract_order_pda,
    Protocol.LIMIT_V2: LimitV2Adapter.extract_order_pda,
    Protocol.KAMINO: KaminoAdapter.extract_order_pda,
}


def adapter_for(protocol: Protocol) -> ProtocolAdapter:
    return _ADAPTERS[protocol]


def extract_order_pda(protocol: Protocol, accounts: Sequence[AccountInfo], instruction_name: str) -> str:
    """Order account of an instruction of ``protocol`` (named account first, then position)."""
    return _ORDER_PDA_EXTRACTORS[protocol](accounts, instruction_name)
