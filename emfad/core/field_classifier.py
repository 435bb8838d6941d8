"""
Field-Threshold Classifier

Fast first-pass classification straight from the raw magnetic (µT) and
electric (V/m) field strengths, before any impedance modelling.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Tuple

from emfad.core.material_database import MaterialType
from emfad.core.physics_analyzer import MeasurementReading
from emfad.utils.numeric import clamp_unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSignature:
    name: str
    magnetic_field: float
    electric_field: float
    material_type: MaterialType


REFERENCE_SIGNATURES: Tuple[FieldSignature, ...] = (
    FieldSignature("Iron", 120.0, 10.0, MaterialType.FERROUS_METAL),
    FieldSignature("Copper", 10.0, 35.0, MaterialType.NON_FERROUS_METAL),
    FieldSignature("Silver", 5.0, 40.0, MaterialType.NON_FERROUS_METAL),
    FieldSignature("Cavity", 2.0, 15.0, MaterialType.CAVITY),
)

DESCRIPTIONS: Dict[MaterialType, str] = {
    MaterialType.FERROUS_METAL: "Ferrous metal (e.g. iron, steel)",
    MaterialType.NON_FERROUS_METAL: "Non-ferrous metal (e.g. copper, aluminium)",
    MaterialType.CAVITY: "Cavity or non-metallic material",
    MaterialType.UNKNOWN: "Unknown material",
}


@dataclass
class FieldThresholds:
    ferrous_magnetic: float = 80.0  # µT
    non_ferrous_electric: float = 30.0  # V/m
    non_ferrous_magnetic: float = 20.0  # µT
    cavity_electric: float = 20.0  # V/m
    cavity_magnetic: float = 5.0  # µT


@dataclass
class FieldClassification:
    material_type: MaterialType
    confidence: float
    closest_signature: Optional[str] = None


class FieldClassifier:
    def __init__(self, thresholds: Optional[FieldThresholds] = None) -> None:
        self.thresholds: FieldThresholds = thresholds or FieldThresholds()

    def classify(self, reading: MeasurementReading) -> FieldClassification:
        """
        B > 80 → FERROUS, E > 30 and B < 20 → NON_FERROUS,
        E < 20 and B < 5 → CAVITY, otherwise UNKNOWN.
        """
        b = reading.magnetic_field
        e = reading.electric_field
        t = self.thresholds

        if b > t.ferrous_magnetic:
            material_type = MaterialType.FERROUS_METAL
        elif e > t.non_ferrous_electric and b < t.non_ferrous_magnetic:
            material_type = MaterialType.NON_FERROUS_METAL
        elif e < t.cavity_electric and b < t.cavity_magnetic:
            material_type = MaterialType.CAVITY
        else:
            material_type = MaterialType.UNKNOWN

        signature = self.closest_signature(b, e)
        confidence = self.signature_similarity(b, e, signature)
        logger.debug(
            f"Field classification B={b:.2f} E={e:.2f} -> {material_type.name} "
            f"(closest={signature.name}, confidence={confidence:.3f})"
        )
        return FieldClassification(material_type, confidence, signature.name)

    @staticmethod
    def closest_signature(magnetic_field: float, electric_field: float) -> FieldSignature:
        return min(
            REFERENCE_SIGNATURES,
            key=lambda s: abs(s.magnetic_field - magnetic_field) + abs(s.electric_field - electric_field),
        )

    @staticmethod
    def signature_similarity(magnetic_field: float, electric_field: float, signature: FieldSignature) -> float:
        magnetic_sim = 1.0 - abs(signature.magnetic_field - magnetic_field) / signature.magnetic_field
        electric_sim = 1.0 - abs(signature.electric_field - electric_field) / signature.electric_field
        return clamp_unit((clamp_unit(magnetic_sim) + clamp_unit(electric_sim)) / 2.0)

    def update_thresholds(
        self,
        ferrous_magnetic: Optional[float] = None,
        non_ferrous_electric: Optional[float] = None,
        non_ferrous_magnetic: Optional[float] = None,
    ) -> None:
        if ferrous_magnetic is not None:
            self.thresholds.ferrous_magnetic = ferrous_magnetic
        if non_ferrous_electric is not None:
            self.thresholds.non_ferrous_electric = non_ferrous_electric
        if non_ferrous_magnetic is not None:
            self.thresholds.non_ferrous_magnetic = non_ferrous_magnetic
        logger.info(f"Field thresholds updated: {self.current_thresholds()}")

    def current_thresholds(self) -> Dict[str, float]:
        return asdict(self.thresholds)

    @staticmethod
    def describe(material_type: MaterialType) -> str:
        return DESCRIPTIONS.get(material_type, material_type.name.replace("_", " ").capitalize())
