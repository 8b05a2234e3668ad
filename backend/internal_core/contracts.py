from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from backend.risk.model import InputVector, SensitivityFactors

Role = Literal["clinician", "engineer"]
Audience = Literal["identified", "deidentified"]
Sex = Literal["male", "female"]
RiskStatusValue = Literal["GREEN", "AMBER", "RED"]


class BaselineRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    coil_offset_deg: float = Field(alias="coilOffsetDeg", ge=0.0, le=30.0, allow_inf_nan=False)
    charge_rate_c: float = Field(alias="chargeRateC", ge=0.2, le=2.0, allow_inf_nan=False)
    temp_c: float = Field(alias="tempC", ge=15.0, le=60.0, allow_inf_nan=False)
    load_ma: float = Field(alias="load_mA", ge=0.0, le=500.0, allow_inf_nan=False)

    def to_input_vector(self) -> InputVector:
        return InputVector(
            coil_offset_deg=self.coil_offset_deg,
            charge_rate_c=self.charge_rate_c,
            temp_c=self.temp_c,
            load_ma=self.load_ma,
        )


class FactorsRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    misalign: Optional[float] = Field(default=None, ge=0.0, allow_inf_nan=False)
    rate: Optional[float] = Field(default=None, ge=0.0, allow_inf_nan=False)
    temp: Optional[float] = Field(default=None, ge=0.0, allow_inf_nan=False)
    load: Optional[float] = Field(default=None, ge=0.0, allow_inf_nan=False)

    def to_sensitivity_factors(self) -> SensitivityFactors:
        return SensitivityFactors(
            misalign=self.misalign,
            rate=self.rate,
            temp=self.temp,
            load=self.load,
        )


class PatientRecordBase(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: str = Field(min_length=1, max_length=128)
    device_model: str = Field(alias="deviceModel", min_length=1)
    history: List[str] = Field(default_factory=list)
    baseline: BaselineRecord
    factors: Optional[FactorsRecord] = None

    def sensitivity_factors(self) -> Optional[SensitivityFactors]:
        if self.factors is None:
            return None
        return self.factors.to_sensitivity_factors()


class IdentifiedPatient(PatientRecordBase):
    name: str = Field(min_length=1)
    sex: Sex
    dob: date
    address: str


class DeidentifiedPatient(PatientRecordBase):
    display_name: str = Field(alias="displayName", min_length=1)
    sex: Sex
    age: int = Field(ge=0, le=130)


PatientRecord = Union[IdentifiedPatient, DeidentifiedPatient]


class RunInputs(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    coil_offset_deg: float = Field(alias="coilOffsetDeg")
    charge_rate_c: float = Field(alias="chargeRateC")
    temp_c: float = Field(alias="tempC")
    load_ma: float = Field(alias="load_mA")


class RunOutputs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    score: float
    status: RiskStatusValue


class RunLogEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    ts: str
    role: Role
    profile_id: str = Field(alias="profileId")
    compare_id: Optional[str] = Field(default=None, alias="compareId")
    inputs: RunInputs
    outputs: RunOutputs
