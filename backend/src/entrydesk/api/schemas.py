"""Pydantic schemas for forwarded requests and relayed responses."""

from __future__ import annotations

from typing import Any
from typing import Literal
from typing import Optional
from typing import Union

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import SecretStr

from entrydesk.utils.logging import mask_phone


class BackendPayload(BaseModel):
    """Body posted to the backend webhook."""

    model_config = ConfigDict(frozen=True)

    action: Literal["lookup", "checkin"]
    phone: str = Field(pattern=r"^[0-9]+$")
    qty: Optional[Union[int, float]] = None
    secret: SecretStr

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON body, secret revealed, unset fields dropped."""
        body: dict[str, Any] = {"action": self.action, "phone": self.phone}
        if self.qty is not None:
            body["qty"] = self.qty
        body["secret"] = self.secret.get_secret_value()
        return body

    def to_log(self) -> dict[str, Any]:
        """Return a loggable view: no secret, masked phone."""
        view: dict[str, Any] = {
            "action": self.action,
            "phone_masked": mask_phone(self.phone),
        }
        if self.qty is not None:
            view["qty"] = self.qty
        return view


class ProxySuccess(BaseModel):
    """Envelope returned to the client when the backend answered JSON."""

    ok: Literal[True] = True
    gas: Any = None
