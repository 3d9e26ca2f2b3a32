"""
Shared Test Fixtures

An in-memory explorer behind httpx.MockTransport. Boxes are stored in the
explorer's JSON shape and matched against search bodies the same way the
explorer does: template hash, every register filter, every asset id.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from reputation.config import ReputationConfig
from reputation.explorer import codec
from reputation.explorer.address import ergo_tree_to_address, ownership_commitment
from reputation.explorer.client import ExplorerClient
from reputation.service import ReputationService


TEMPLATE_HASH = "a1" * 32
TYPE_TEMPLATE_HASH = "b2" * 32
EXPLORER = "http://explorer.test"


def hex_id(n: int) -> str:
    """Deterministic 64-char hex id."""
    return f"{n:064x}"


# =============================================================================
# ACCOUNTS
# =============================================================================

@dataclass(frozen=True)
class Account:
    address: str
    commitment: str


def make_account(key_byte: int) -> Account:
    tree = bytes.fromhex("0008cd02") + bytes([key_byte]) * 32
    address = ergo_tree_to_address(tree)
    return Account(address=address, commitment=ownership_commitment(address))


class StaticWallet:
    def __init__(self, address: Optional[str]):
        self.address = address

    async def get_change_address(self) -> Optional[str]:
        return self.address


@dataclass
class RecordingSubmitter:
    """Submission collaborator that records every call."""
    calls: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[Exception] = None

    async def submit(self, amount, total_supply, type_id, target_pointer,
                     polarization, content, locked, input_box=None) -> str:
        self.calls.append({
            'amount': amount,
            'total_supply': total_supply,
            'type_id': type_id,
            'target_pointer': target_pointer,
            'polarization': polarization,
            'content': content,
            'locked': locked,
            'input_box': input_box,
        })
        if self.error is not None:
            raise self.error
        return hex_id(0xF000 + len(self.calls))


# =============================================================================
# FAKE EXPLORER
# =============================================================================

def _register(serialized: str) -> Dict[str, str]:
    return {
        'serializedValue': serialized,
        'renderedValue': codec.serialized_to_rendered(serialized),
        'sigmaType': 'SBoolean' if serialized.startswith('01') else 'Coll[SByte]',
    }


class FakeLedger:
    """
    Explorer double.

    emissions: token id -> emissionAmount
    blocks:    block id -> header timestamp (as the explorer would send it)
    """

    def __init__(self):
        self.boxes: List[Tuple[str, Dict[str, Any]]] = []
        self.emissions: Dict[str, int] = {}
        self.blocks: Dict[str, Any] = {}
        self.failing_tokens = set()
        self.failing_blocks = set()
        self.requests: List[Tuple[str, str, Dict[str, str], Any]] = []
        self._search_failures: List[Callable[[Dict[str, Any], int], bool]] = []

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def add_box(
        self,
        box_id: str,
        token_id: Optional[str],
        type_id: str,
        pointer: str,
        owner: str,
        amount: int = 1,
        locked: bool = True,
        polarization: bool = True,
        content: Any = "hello",
        block_id: Optional[str] = None,
        height: int = 1000,
        template: str = TEMPLATE_HASH,
        ergo_tree: str = "1000",
        omit: Tuple[str, ...] = ()
    ) -> Dict[str, Any]:
        registers = {
            'R4': _register(codec.encode_coll_byte(type_id)),
            'R5': _register(codec.encode_string(pointer)),
            'R6': _register(codec.encode_bool(locked)),
            'R7': _register(owner),
            'R8': _register(codec.encode_bool(polarization)),
        }
        if content is not None:
            text = content if isinstance(content, str) else json.dumps(content)
            registers['R9'] = _register(codec.encode_string(text))
        for name in omit:
            registers.pop(name, None)

        item = {
            'boxId': box_id,
            'transactionId': hex_id(0xAAAA),
            'blockId': block_id,
            'value': 1000000,
            'index': 0,
            'creationHeight': height,
            'ergoTree': ergo_tree,
            'assets': [{'tokenId': token_id, 'amount': amount}] if token_id else [],
            'additionalRegisters': registers,
        }
        self.boxes.append((template, item))
        return item

    def add_type(self, token_id: str, name: str, description: str = "",
                 schema: str = "", is_rep_proof: bool = True) -> None:
        registers = {
            'R4': _register(codec.encode_string(name)),
            'R5': _register(codec.encode_string(description)),
            'R6': _register(codec.encode_string(schema)),
            'R7': _register(codec.encode_bool(is_rep_proof)),
        }
        self.boxes.append((TYPE_TEMPLATE_HASH, {
            'boxId': hex_id(0xE000 + len(self.boxes)),
            'value': 1000000,
            'creationHeight': 10,
            'ergoTree': "2000",
            'assets': [{'tokenId': token_id, 'amount': 1}],
            'additionalRegisters': registers,
        }))

    def fail_search(self, when: Callable[[Dict[str, Any], int], bool]) -> None:
        """Answer 503 to any search whose (body, offset) satisfies when."""
        self._search_failures.append(when)

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def calls_to(self, prefix: str) -> int:
        return sum(1 for _, path, _, _ in self.requests if path.startswith(prefix))

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _matches(self, template: str, item: Dict[str, Any], body: Dict[str, Any]) -> bool:
        if body.get('ergoTreeTemplateHash') != template:
            return False
        registers = item.get('additionalRegisters', {})
        for name, wanted in (body.get('registers') or {}).items():
            reg = registers.get(name)
            if reg is None or wanted not in (reg['renderedValue'], reg['serializedValue']):
                return False
        held = {a['tokenId'] for a in item.get('assets', [])}
        return all(token in held for token in (body.get('assets') or []))

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        params = dict(request.url.params)
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, params, body))

        if path == '/api/v1/boxes/unspent/search':
            offset = int(params.get('offset', 0))
            limit = int(params.get('limit', 100))
            if any(when(body, offset) for when in self._search_failures):
                return httpx.Response(503, json={'reason': 'unavailable'})
            matched = [item for template, item in self.boxes
                       if self._matches(template, item, body)]
            return httpx.Response(200, json={
                'items': matched[offset:offset + limit],
                'total': len(matched),
            })

        if path.startswith('/api/v1/tokens/'):
            token_id = path.rsplit('/', 1)[-1]
            if token_id in self.failing_tokens:
                return httpx.Response(503)
            if token_id not in self.emissions:
                return httpx.Response(404, json={'reason': 'not found'})
            return httpx.Response(200, json={
                'id': token_id, 'emissionAmount': self.emissions[token_id]
            })

        if path.startswith('/api/v1/blocks/'):
            block_id = path.rsplit('/', 1)[-1]
            if block_id in self.failing_blocks:
                return httpx.Response(503)
            if block_id not in self.blocks:
                return httpx.Response(404)
            return httpx.Response(200, json={
                'block': {'header': {'id': block_id, 'timestamp': self.blocks[block_id]}}
            })

        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def config():
    return ReputationConfig(
        explorer_uri=EXPLORER,
        template_hash=TEMPLATE_HASH,
        type_template_hash=TYPE_TEMPLATE_HASH,
        page_size=2,
    )


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def alice():
    return make_account(0x11)


@pytest.fixture
def bob():
    return make_account(0x22)


@pytest.fixture
def submitter():
    return RecordingSubmitter()


@pytest.fixture
def make_client(config, ledger):
    def factory(cfg: Optional[ReputationConfig] = None) -> ExplorerClient:
        return ExplorerClient(cfg or config, transport=ledger.transport())
    return factory


@pytest.fixture
def make_service(config, ledger):
    def factory(cfg: Optional[ReputationConfig] = None, **kwargs) -> ReputationService:
        return ReputationService(cfg or config, transport=ledger.transport(), **kwargs)
    return factory


@pytest.fixture
def wallet_for():
    return StaticWallet
