from pydantic import BaseModel, Field


class OperationBase(BaseModel):
    # Filled in by on-chain adapters; simulated collaborators leave them empty.
    adapter: str = "unknown"
    transaction_hash: str | None = None
    transaction_chain_id: int | None = None


class LiquidityReceipt(OperationBase):
    used_a: int = Field(ge=0)
    used_b: int = Field(ge=0)
    shares: int = Field(ge=0)
