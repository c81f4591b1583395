import logging
import re

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from amm_indexer.config import settings
from amm_indexer.storage.db import get_db
from amm_indexer.storage.models.pools import Pool
from amm_indexer.storage.models.token import Token
from amm_indexer.storage.types import BigUint

log = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

SEARCH_SORT_FIELDS = {
    "volume_usd": Token.volume_usd,
    "market_cap_usd": Token.market_cap_usd,
    "total_supply": Token.total_supply,
    "first_seen_at": Token.first_seen_at,
    "last_seen_at": Token.last_seen_at,
    "name": Token.name,
    "symbol": Token.symbol,
}

router = APIRouter()


def get_session(request: Request):
    yield from get_db(request.app.state.session_factory)


def require_admin(authorization: str | None = Header(default=None)):
    secret = settings.ADMIN_SECRET
    if not secret:
        log.error("ADMIN_SECRET is not set, rejecting admin request")
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not authorization or not authorization.startswith("Bearer ") or authorization[7:] != secret:
        raise HTTPException(status_code=401, detail="Unauthorized")


def _valid_address(address: str) -> str:
    if not ADDRESS_RE.match(address):
        raise HTTPException(status_code=400, detail="Invalid token address")
    return address.lower()


def _order_by(column, order: str, dialect: str) -> list:
    # BigUint is a decimal string outside Postgres; shorter strings are smaller numbers
    keys = [column]
    if isinstance(column.type, BigUint) and dialect != "postgresql":
        keys = [func.length(column), column]
    return [k.asc() if order == "asc" else k.desc() for k in keys]


@router.get("/")
def read_root():
    return {"message": "AMM indexer API"}


@router.get("/pools/{chain_id}/{address}")
def get_pool(chain_id: int, address: str, db: Session = Depends(get_session)):
    pool = db.get(Pool, (_valid_address(address), chain_id))
    if pool is None:
        raise HTTPException(status_code=404, detail="Pool not found")
    return pool.to_dict(stringify=True)


@router.get("/tokens/{chain_id}/{address}")
def get_token(chain_id: int, address: str, db: Session = Depends(get_session)):
    token = db.get(Token, (_valid_address(address), chain_id))
    if token is None:
        raise HTTPException(status_code=404, detail="Token not found")
    return token.to_dict(stringify=True)


@router.get("/search/{query}")
def search_tokens(
    query: str,
    chain_ids: str | None = None,
    page: int = 1,
    limit: int = 15,
    sort: str = "last_seen_at",
    order: str = "desc",
    promoted: bool = False,
    db: Session = Depends(get_session),
):
    """Name/symbol substring or address prefix search over tokens."""
    page = max(1, page)
    limit = min(100, max(1, limit))
    order_by = _order_by(SEARCH_SORT_FIELDS.get(sort, Token.last_seen_at), order, db.get_bind().dialect.name)

    try:
        chains = [int(c) for c in chain_ids.split(",") if c.strip()] if chain_ids else []
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid chain_ids parameter")

    where = [or_(
        Token.name.ilike(f"%{query}%"),
        Token.symbol.ilike(f"%{query}%"),
        Token.address.ilike(f"{query.lower()}%"),
    )]
    if chains:
        where.append(Token.chain_id.in_(chains))
    if promoted:
        where.append(Token.is_promoted.is_(True))

    total = db.scalar(select(func.count()).select_from(Token).where(*where))
    tokens = db.scalars(
        select(Token).where(*where).order_by(*order_by)
        .offset((page - 1) * limit).limit(limit)
    ).all()

    return {
        "tokens": [t.to_dict(stringify=True) for t in tokens],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": -(-total // limit),
        },
    }


# ── admin ───────────────────────────────────────────────────────────────
def _set_promoted(db: Session, chain_id: int, address: str, value: bool) -> dict:
    address = _valid_address(address)
    token = db.get(Token, (address, chain_id))
    if token is None:
        raise HTTPException(status_code=404, detail="Token not found")
    token.is_promoted = value
    db.commit()
    log.info(f"Token {chain_id}:{address} is_promoted={value}")
    return {"success": True, "token_address": address, "chain_id": chain_id, "is_promoted": value}


@router.post("/admin/tokens/{chain_id}/{address}/promote", dependencies=[Depends(require_admin)])
def promote_token(chain_id: int, address: str, db: Session = Depends(get_session)):
    return _set_promoted(db, chain_id, address, True)


@router.post("/admin/tokens/{chain_id}/{address}/unpromote", dependencies=[Depends(require_admin)])
def unpromote_token(chain_id: int, address: str, db: Session = Depends(get_session)):
    return _set_promoted(db, chain_id, address, False)


@router.get("/admin/promoted", dependencies=[Depends(require_admin)])
def promoted_tokens(page: int = 1, limit: int = 20, db: Session = Depends(get_session)):
    if page < 1:
        raise HTTPException(status_code=400, detail="Invalid page parameter")
    if limit < 1 or limit > 100:
        raise HTTPException(status_code=400, detail="Invalid limit parameter (1-100)")

    where = Token.is_promoted.is_(True)
    total = db.scalar(select(func.count()).select_from(Token).where(where))
    tokens = db.scalars(
        select(Token).where(where)
        .order_by(Token.last_seen_at.desc(), Token.address)
        .offset((page - 1) * limit).limit(limit)
    ).all()
    return {
        "tokens": [t.to_dict(stringify=True) for t in tokens],
        "pagination": {"page": page, "limit": limit, "total": total},
    }
