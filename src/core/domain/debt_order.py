"""
DebtOrder — каноническое представление заявки / соглашения о займе

Immutable Pydantic модель. Подписи присоединяются через with_debtor_signature /
with_creditor_signature, которые возвращают новую модель; после присоединения
обеих подписей order не меняется.

Хэши (keccak-256 над solidity-packed полями, без подписей):
- agreement_id (issuance commitment): issuance_version, debtor, underwriter,
  underwriter_risk_rating, terms_contract, termsContractParameters, salt
- order_hash (debtor/creditor commitment): kernel_version, agreement_id,
  underwriter_fee, principal_amount, principal_token, debtor_fee,
  creditor_fee, relayer, relayer_fee, expiration_timestamp_in_sec

Salt входит в agreement_id, поэтому два order с разными salt никогда не
совпадают по order_hash. Creditor в хэш не входит: он назначается при
countersign.
"""

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from web3 import Web3

from src.core.contracts.validators import DebtOrderValidator, schema_invalid_from
from src.core.domain.addresses import NULL_ADDRESS, normalize_address
from src.core.math.bit_fields import WORD_MAX, hex_to_word, word_to_hex

UINT256_MAX = 2**256 - 1


# =============================================================================
# SIGNATURE
# =============================================================================


class ECDSASignature(BaseModel):
    """ECDSA подпись (v, r, s) над order_hash."""

    v: int = Field(..., ge=0, le=255)
    r: str = Field(..., pattern=r"^0x[0-9a-fA-F]{64}$")
    s: str = Field(..., pattern=r"^0x[0-9a-fA-F]{64}$")

    model_config = {"frozen": True}

    @classmethod
    def from_vrs(cls, v: int, r: int, s: int) -> "ECDSASignature":
        return cls(v=v, r="0x" + format(r, "064x"), s="0x" + format(s, "064x"))

    def to_vrs(self) -> Tuple[int, int, int]:
        return self.v, int(self.r, 16), int(self.s, 16)


# =============================================================================
# DEBT ORDER
# =============================================================================


class DebtOrder(BaseModel):
    """Заявка на займ (unsigned → debtor signed → fully signed)."""

    kernel_version: str
    issuance_version: str

    principal_token: str
    principal_amount: int = Field(..., ge=0, le=UINT256_MAX)

    debtor: str
    creditor: Optional[str] = None

    relayer: str = NULL_ADDRESS
    relayer_fee: int = Field(0, ge=0, le=UINT256_MAX)
    underwriter: str = NULL_ADDRESS
    underwriter_fee: int = Field(0, ge=0, le=UINT256_MAX)
    underwriter_risk_rating: int = Field(0, ge=0, le=UINT256_MAX)
    debtor_fee: int = Field(0, ge=0, le=UINT256_MAX)
    creditor_fee: int = Field(0, ge=0, le=UINT256_MAX)

    terms_contract: str
    terms_contract_type: str = Field(..., min_length=1)
    terms_parameters: Tuple[int, int]

    expiration_timestamp_in_sec: int = Field(..., ge=0, le=UINT256_MAX)
    salt: int = Field(..., ge=0, le=UINT256_MAX)

    debtor_signature: Optional[ECDSASignature] = None
    creditor_signature: Optional[ECDSASignature] = None

    model_config = {"frozen": True}

    @field_validator(
        "kernel_version", "issuance_version", "principal_token", "debtor",
        "relayer", "underwriter", "terms_contract",
    )
    @classmethod
    def checksum(cls, v: str) -> str:
        return normalize_address(v)

    @field_validator("creditor")
    @classmethod
    def checksum_optional(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else normalize_address(v)

    @field_validator("terms_parameters")
    @classmethod
    def validate_words(cls, v: Tuple[int, int]) -> Tuple[int, int]:
        for word in v:
            if word < 0 or word > WORD_MAX:
                raise ValueError("terms parameter words must be unsigned 256-bit integers")
        if v[0] & v[1]:
            raise ValueError("terms parameter words must occupy disjoint bit ranges")
        return v

    @model_validator(mode="after")
    def validate_signature_order(self) -> "DebtOrder":
        """Creditor подписывает только после debtor."""
        if self.creditor_signature is not None and self.debtor_signature is None:
            raise ValueError("creditor signature requires a debtor signature")
        if self.creditor_signature is not None and self.creditor is None:
            raise ValueError("creditor signature requires a creditor address")
        return self

    # -------------------------------------------------------------------------
    # Хэши
    # -------------------------------------------------------------------------

    @property
    def terms_contract_parameters(self) -> int:
        """Единое on-chain значение bytes32 (word0 | word1)."""
        return self.terms_parameters[0] | self.terms_parameters[1]

    @property
    def agreement_id(self) -> str:
        """Issuance commitment hash (0x-hex)."""
        digest = Web3.solidity_keccak(
            ["address", "address", "address", "uint256", "address", "bytes32", "uint256"],
            [
                self.issuance_version,
                self.debtor,
                self.underwriter,
                self.underwriter_risk_rating,
                self.terms_contract,
                self.terms_contract_parameters.to_bytes(32, "big"),
                self.salt,
            ],
        )
        return "0x" + digest.hex().removeprefix("0x")

    @property
    def order_hash(self) -> str:
        """Debt order hash (debtor и creditor подписывают его же)."""
        digest = Web3.solidity_keccak(
            [
                "address", "bytes32", "uint256", "uint256", "address",
                "uint256", "uint256", "address", "uint256", "uint256",
            ],
            [
                self.kernel_version,
                bytes.fromhex(self.agreement_id[2:]),
                self.underwriter_fee,
                self.principal_amount,
                self.principal_token,
                self.debtor_fee,
                self.creditor_fee,
                self.relayer,
                self.relayer_fee,
                self.expiration_timestamp_in_sec,
            ],
        )
        return "0x" + digest.hex().removeprefix("0x")

    # -------------------------------------------------------------------------
    # Подписи
    # -------------------------------------------------------------------------

    @property
    def is_fully_signed(self) -> bool:
        return self.debtor_signature is not None and self.creditor_signature is not None

    def with_debtor_signature(self, signature: ECDSASignature) -> "DebtOrder":
        if self.debtor_signature is not None:
            raise ValueError("debt order already carries a debtor signature")
        return self.model_copy(update={"debtor_signature": signature})

    def with_creditor_signature(self, creditor: str, signature: ECDSASignature) -> "DebtOrder":
        if self.debtor_signature is None:
            raise ValueError("debtor must sign before the creditor")
        if self.creditor_signature is not None:
            raise ValueError("debt order already carries a creditor signature")
        return self.model_copy(
            update={"creditor": normalize_address(creditor), "creditor_signature": signature}
        )

    def is_expired_at(self, timestamp: int) -> bool:
        return self.expiration_timestamp_in_sec < timestamp

    # -------------------------------------------------------------------------
    # JSON (relayer формат)
    # -------------------------------------------------------------------------

    def to_json_dict(self) -> Dict[str, Any]:
        """Сериализация в JSON-форму: uint256 как десятичные строки, слова как bytes32 hex."""
        data: Dict[str, Any] = {
            "kernelVersion": self.kernel_version,
            "issuanceVersion": self.issuance_version,
            "principalToken": self.principal_token,
            "principalAmount": str(self.principal_amount),
            "debtor": self.debtor,
            "relayer": self.relayer,
            "relayerFee": str(self.relayer_fee),
            "underwriter": self.underwriter,
            "underwriterFee": str(self.underwriter_fee),
            "underwriterRiskRating": str(self.underwriter_risk_rating),
            "debtorFee": str(self.debtor_fee),
            "creditorFee": str(self.creditor_fee),
            "termsContract": self.terms_contract,
            "termsContractType": self.terms_contract_type,
            "termsParameters": [word_to_hex(w) for w in self.terms_parameters],
            "expirationTimestampInSec": str(self.expiration_timestamp_in_sec),
            "salt": str(self.salt),
        }
        if self.creditor is not None:
            data["creditor"] = self.creditor
        if self.debtor_signature is not None:
            data["debtorSignature"] = self.debtor_signature.model_dump()
        if self.creditor_signature is not None:
            data["creditorSignature"] = self.creditor_signature.model_dump()
        return data

    @classmethod
    def from_json_dict(cls, data: Dict[str, Any]) -> "DebtOrder":
        """
        Загрузка order из JSON-формы.

        Форма проверяется по debt_order.json schema до любого числового
        декодирования.

        Raises:
            SchemaInvalid: при нарушении схемы или значении вне диапазона модели
                (uint256 больше 2^256-1, неверный checksum адреса, пересекающиеся
                слова параметров)
        """
        DebtOrderValidator().validate_or_raise(data)

        words = data["termsParameters"]
        try:
            return cls(
                kernel_version=data["kernelVersion"],
                issuance_version=data["issuanceVersion"],
                principal_token=data["principalToken"],
                principal_amount=int(data["principalAmount"]),
                debtor=data["debtor"],
                creditor=data.get("creditor"),
                relayer=data["relayer"],
                relayer_fee=int(data["relayerFee"]),
                underwriter=data["underwriter"],
                underwriter_fee=int(data["underwriterFee"]),
                underwriter_risk_rating=int(data["underwriterRiskRating"]),
                debtor_fee=int(data["debtorFee"]),
                creditor_fee=int(data["creditorFee"]),
                terms_contract=data["termsContract"],
                terms_contract_type=data["termsContractType"],
                terms_parameters=(
                    hex_to_word(words[0], "termsParameters/0"),
                    hex_to_word(words[1], "termsParameters/1"),
                ),
                expiration_timestamp_in_sec=int(data["expirationTimestampInSec"]),
                salt=int(data["salt"]),
                debtor_signature=data.get("debtorSignature"),
                creditor_signature=data.get("creditorSignature"),
            )
        except ValidationError as e:
            raise schema_invalid_from(e) from e
