"""
Material Reference Database

지하 탐사 대상 물질(금속, 결정, 광맥, 인공 구조물)의 전자기 물성 카탈로그.
The table is built once, wrapped in a read-only mapping and shared by
reference; components receive the database through their constructors.

Lookup uses a weighted Euclidean distance over
(log10 conductivity, |permittivity|, permeability, density). Conductivity is
compared on a log scale because it spans ~20 decades (1e-13 .. 1e7 S/m).
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from emfad.utils.complex_math import Complex, J
from emfad.utils.constants import EPSILON_0, MU_0, angular_frequency
from emfad.utils.numeric import clamp_unit, safe_log10

logger = logging.getLogger(__name__)


class MaterialType(Enum):
    FERROUS_METAL = "ferrous_metal"
    NON_FERROUS_METAL = "non_ferrous_metal"
    WATER = "water"
    CAVITY = "cavity"
    CRYSTAL = "crystal"
    MINERAL = "mineral"
    NATURAL_VEIN = "natural_vein"
    ARTIFICIAL_STRUCTURE = "artificial_structure"
    UNKNOWN = "unknown"


class GemstoneType(Enum):
    DIAMOND = "diamond"
    RUBY = "ruby"
    EMERALD = "emerald"
    SAPPHIRE = "sapphire"
    TOPAZ = "topaz"
    AMETHYST = "amethyst"
    TOURMALINE = "tourmaline"
    GARNET = "garnet"


class VeinType(Enum):
    GOLD_VEIN = "gold_vein"
    SILVER_VEIN = "silver_vein"
    COPPER_VEIN = "copper_vein"
    QUARTZ_VEIN = "quartz_vein"
    PYRITE_VEIN = "pyrite_vein"
    MAGNETITE_VEIN = "magnetite_vein"


class StructureType(Enum):
    TUNNEL = "tunnel"
    CHAMBER = "chamber"
    WELL = "well"
    FOUNDATION = "foundation"
    WALL = "wall"
    DRAINAGE = "drainage"


class AnomalyShape(Enum):
    CREVICE = "crevice"  # 틈새
    POINT = "point"  # 점
    VEIN = "vein"  # 광맥
    CAVITY = "cavity"  # 공동
    LAYER = "layer"  # 층
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class MaterialProperties:
    """
    Reference entry of the database.

    Attributes:
        key: 데이터베이스 식별자
        name: 표시 이름
        conductivity: 전기전도도 (S/m)
        permittivity: 복소 비유전율
        permeability: 비투자율
        density: 밀도 (g/cm³)
        type: 물질 분류
        color: 시각화용 HEX 색상
        typical_depth: 일반적인 매장 깊이 (m)
        typical_size: 일반적인 크기 (m)
    """

    key: str
    name: str
    conductivity: float
    permittivity: Complex
    permeability: float
    density: float
    type: MaterialType
    color: str
    typical_depth: float
    typical_size: float
    gemstone_type: Optional[GemstoneType] = None
    vein_type: Optional[VeinType] = None
    structure_type: Optional[StructureType] = None

    @property
    def is_gemstone(self) -> bool:
        return self.gemstone_type is not None


@dataclass
class GemstoneDetection:
    gemstone_type: GemstoneType
    material: MaterialProperties
    confidence: float
    surrounding_minerals: List[MaterialProperties] = field(default_factory=list)


@dataclass
class VeinOrStructureDetection:
    category: MaterialType  # NATURAL_VEIN or ARTIFICIAL_STRUCTURE
    material: MaterialProperties
    confidence: float
    vein_type: Optional[VeinType] = None
    structure_type: Optional[StructureType] = None


@dataclass
class DatabaseConfig:
    """
    Match weights and rule thresholds of the database detectors.

    Attributes:
        conductivity_weight: log10(σ) 거리 가중치
        permittivity_weight: |ε| 거리 가중치
        permeability_weight: μr 거리 가중치
        density_weight: 밀도 거리 가중치
    """

    conductivity_weight: float = 1.0
    permittivity_weight: float = 1.0
    permeability_weight: float = 1.0
    density_weight: float = 1.0

    gemstone_max_conductivity: float = 1e-9
    gemstone_min_permittivity: float = 6.0
    gemstone_max_gradient: float = 0.1
    gemstone_permeability_tolerance: float = 0.1

    mineral_conductivity_decades: float = 2.0
    mineral_permittivity_tolerance: float = 5.0
    mineral_permeability_tolerance: float = 10.0

    vein_min_conductivity: float = 1e4
    vein_min_aspect_ratio: float = 10.0
    vein_max_symmetry: float = 0.3
    vein_min_depth: float = 1.5

    structure_low_conductivity: float = 1e-9
    structure_high_conductivity: float = 1e6
    structure_max_aspect_ratio: float = 3.0
    structure_min_symmetry: float = 0.7
    structure_max_depth: float = 10.0


GEMSTONE_SHAPES = frozenset({AnomalyShape.CREVICE, AnomalyShape.POINT, AnomalyShape.VEIN})


def _entry(key, name, sigma, eps, mu, rho, mtype, color, depth, size, **kwargs) -> MaterialProperties:
    return MaterialProperties(
        key=key,
        name=name,
        conductivity=sigma,
        permittivity=Complex(eps, 0.0),
        permeability=mu,
        density=rho,
        type=mtype,
        color=color,
        typical_depth=depth,
        typical_size=size,
        **kwargs,
    )


def _builtin_materials() -> Dict[str, MaterialProperties]:
    M = MaterialType
    entries = [
        # Metals
        _entry("iron", "Iron", 1.0e7, 1.0, 1000.0, 7.87, M.FERROUS_METAL, "#5A5A5A", 0.5, 0.1),
        _entry("gold", "Gold", 4.1e7, 1.0, 1.0, 19.3, M.NON_FERROUS_METAL, "#FFD700", 0.5, 0.05),
        _entry("silver", "Silver", 6.3e7, 1.0, 1.0, 10.49, M.NON_FERROUS_METAL, "#C0C0C0", 0.5, 0.05),
        _entry("copper", "Copper", 5.8e7, 1.0, 1.0, 8.96, M.NON_FERROUS_METAL, "#B87333", 0.5, 0.1),
        _entry("aluminum", "Aluminum", 3.5e7, 1.0, 1.0, 2.70, M.NON_FERROUS_METAL, "#A9A9A9", 0.3, 0.1),
        # Fluids / voids
        _entry("water", "Water", 0.5, 80.0, 1.0, 1.0, M.WATER, "#4169E1", 2.0, 1.0),
        _entry("air_cavity", "Air cavity", 1e-14, 1.0, 1.0, 0.0, M.CAVITY, "#000000", 1.0, 0.5),
        # Host rock and minerals
        _entry("basalt", "Basalt", 1e-4, 8.0, 1.05, 3.0, M.MINERAL, "#4A4A4A", 3.0, 5.0),
        _entry("limestone", "Limestone", 1e-5, 6.0, 1.0, 2.7, M.MINERAL, "#E6E6E6", 3.0, 5.0),
        _entry("clay", "Clay", 1e-2, 25.0, 1.0, 2.0, M.MINERAL, "#8B4513", 1.0, 3.0),
        _entry("pyrite", "Pyrite", 1e4, 5.0, 1.0, 5.0, M.MINERAL, "#B8860B", 1.0, 0.1),
        _entry("magnetite", "Magnetite", 1e3, 4.0, 100.0, 5.2, M.MINERAL, "#2F4F4F", 1.5, 0.2),
        _entry("quartz", "Quartz", 1e-14, 4.5, 0.9999, 2.65, M.MINERAL, "#E6E6FA", 1.5, 0.2),
        # Gemstones
        _entry("diamond", "Diamond", 1e-13, 5.7, 0.9999, 3.52, M.CRYSTAL, "#B9F2FF", 2.0, 0.05,
               gemstone_type=GemstoneType.DIAMOND),
        _entry("ruby", "Ruby", 1e-12, 9.4, 0.9999, 4.0, M.CRYSTAL, "#E0115F", 1.5, 0.1,
               gemstone_type=GemstoneType.RUBY),
        _entry("sapphire", "Sapphire", 1e-12, 9.3, 0.9999, 3.98, M.CRYSTAL, "#0F52BA", 1.5, 0.1,
               gemstone_type=GemstoneType.SAPPHIRE),
        _entry("emerald", "Emerald", 1e-12, 7.25, 0.9999, 2.76, M.CRYSTAL, "#50C878", 1.2, 0.1,
               gemstone_type=GemstoneType.EMERALD),
        _entry("topaz", "Topaz", 1e-12, 9.0, 0.9999, 3.53, M.CRYSTAL, "#FFC87C", 1.2, 0.1,
               gemstone_type=GemstoneType.TOPAZ),
        _entry("amethyst", "Amethyst", 1e-12, 4.5, 0.9999, 2.63, M.CRYSTAL, "#9966CC", 1.0, 0.2,
               gemstone_type=GemstoneType.AMETHYST),
        _entry("tourmaline", "Tourmaline", 1e-11, 13.0, 0.9999, 3.1, M.CRYSTAL, "#00FF7F", 1.0, 0.2,
               gemstone_type=GemstoneType.TOURMALINE),
        _entry("garnet", "Garnet", 1e-12, 10.0, 0.9999, 4.0, M.CRYSTAL, "#733635", 1.0, 0.1,
               gemstone_type=GemstoneType.GARNET),
        # Natural veins (ore mixed with host rock)
        _entry("gold_vein", "Gold vein", 2.0e7, 1.5, 1.0, 15.0, M.NATURAL_VEIN, "#FFD700", 2.5, 0.5,
               vein_type=VeinType.GOLD_VEIN),
        _entry("silver_vein", "Silver vein", 3.0e7, 1.5, 1.0, 9.5, M.NATURAL_VEIN, "#C0C0C0", 2.0, 0.4,
               vein_type=VeinType.SILVER_VEIN),
        _entry("copper_vein", "Copper vein", 2.5e7, 1.5, 1.0, 8.0, M.NATURAL_VEIN, "#B87333", 1.8, 0.6,
               vein_type=VeinType.COPPER_VEIN),
        _entry("quartz_vein", "Quartz vein", 1e-10, 4.5, 1.0, 2.65, M.NATURAL_VEIN, "#FFFFFF", 1.5, 0.8,
               vein_type=VeinType.QUARTZ_VEIN),
        _entry("pyrite_vein", "Pyrite vein", 1e4, 5.0, 1.0, 4.9, M.NATURAL_VEIN, "#DAA520", 1.2, 0.7,
               vein_type=VeinType.PYRITE_VEIN),
        _entry("magnetite_vein", "Magnetite vein", 1e3, 4.5, 80.0, 5.0, M.NATURAL_VEIN, "#2F4F4F", 2.0, 0.5,
               vein_type=VeinType.MAGNETITE_VEIN),
        # Artificial structures
        _entry("tunnel", "Tunnel", 1e-12, 1.0, 1.0, 0.0, M.ARTIFICIAL_STRUCTURE, "#000000", 5.0, 2.0,
               structure_type=StructureType.TUNNEL),
        _entry("chamber", "Chamber", 1e-12, 1.2, 1.0, 0.1, M.ARTIFICIAL_STRUCTURE, "#1A1A1A", 3.0, 3.0,
               structure_type=StructureType.CHAMBER),
        _entry("well", "Well", 1e-3, 1.5, 1.0, 0.5, M.ARTIFICIAL_STRUCTURE, "#333333", 4.0, 1.0,
               structure_type=StructureType.WELL),
        _entry("foundation", "Foundation", 1e-6, 8.0, 1.0, 2.4, M.ARTIFICIAL_STRUCTURE, "#808080", 1.0, 2.0,
               structure_type=StructureType.FOUNDATION),
        _entry("wall", "Wall", 1e-6, 7.0, 1.0, 2.2, M.ARTIFICIAL_STRUCTURE, "#909090", 0.5, 0.3,
               structure_type=StructureType.WALL),
        _entry("drainage", "Drainage", 1e-4, 2.0, 1.0, 0.3, M.ARTIFICIAL_STRUCTURE, "#556B2F", 1.5, 0.3,
               structure_type=StructureType.DRAINAGE),
    ]
    return {m.key: m for m in entries}


class MaterialDatabase:
    """
    Read-only material catalog with nearest-signature lookup and rule-based
    gemstone / vein / structure detection.
    """

    def __init__(
        self,
        materials: Optional[Mapping[str, MaterialProperties]] = None,
        config: Optional[DatabaseConfig] = None,
    ) -> None:
        table = dict(materials) if materials is not None else _builtin_materials()
        self._materials: Mapping[str, MaterialProperties] = MappingProxyType(table)
        self.config: DatabaseConfig = config or DatabaseConfig()

    @classmethod
    def default(cls) -> "MaterialDatabase":
        """Shared instance backed by the built-in catalog."""
        return _default_database()

    @property
    def materials(self) -> Mapping[str, MaterialProperties]:
        return self._materials

    def __len__(self) -> int:
        return len(self._materials)

    def __contains__(self, key: str) -> bool:
        return key in self._materials

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def get_material(self, key: str) -> Optional[MaterialProperties]:
        return self._materials.get(key)

    def get_all_materials(self) -> List[MaterialProperties]:
        return list(self._materials.values())

    def get_materials_by_type(self, material_type: MaterialType) -> List[MaterialProperties]:
        return [m for m in self._materials.values() if m.type == material_type]

    def material_distance(
        self,
        material: MaterialProperties,
        conductivity: float,
        permittivity,
        permeability: float,
        density: Optional[float] = None,
    ) -> float:
        """
        Weighted Euclidean distance between a catalog entry and a measured signature.

        density=None drops the density term (signatures derived from fields alone).
        """
        cfg = self.config
        eps = Complex.coerce(permittivity)
        d_sigma = safe_log10(material.conductivity) - safe_log10(conductivity)
        d_eps = material.permittivity.magnitude - eps.magnitude
        d_mu = material.permeability - permeability
        total = (
            cfg.conductivity_weight * d_sigma * d_sigma
            + cfg.permittivity_weight * d_eps * d_eps
            + cfg.permeability_weight * d_mu * d_mu
        )
        if density is not None:
            d_rho = material.density - density
            total += cfg.density_weight * d_rho * d_rho
        return math.sqrt(total)

    def find_matching_material(
        self,
        conductivity: float,
        permittivity,
        permeability: float,
        density: Optional[float] = None,
        candidates: Optional[Iterable[MaterialProperties]] = None,
    ) -> Optional[MaterialProperties]:
        """
        Nearest catalog entry to the given signature.

        Args:
            conductivity: S/m
            permittivity: 비유전율 (float 또는 Complex)
            permeability: 비투자율
            density: g/cm³, None이면 밀도 항 제외
            candidates: 검색 대상 (기본값: 전체 카탈로그)

        Returns:
            가장 가까운 MaterialProperties, 후보가 없으면 None
        """
        pool = list(candidates) if candidates is not None else list(self._materials.values())
        if not pool:
            return None
        best = min(
            pool,
            key=lambda m: self.material_distance(m, conductivity, permittivity, permeability, density),
        )
        logger.debug(f"Matched signature (σ={conductivity:.3g}, ε={permittivity}) -> {best.key}")
        return best

    # ------------------------------------------------------------------
    # Wave physics
    # ------------------------------------------------------------------
    @staticmethod
    def calculate_skin_depth(frequency: float, material: MaterialProperties) -> float:
        """
        δ = sqrt(2 / (ω·μ0·μr·σ)).

        Returns math.inf for a perfect insulator (σ == 0).

        Raises:
            ValueError: frequency <= 0
        """
        if frequency <= 0:
            raise ValueError(f"Frequency must be positive, got {frequency}")
        denom = angular_frequency(frequency) * MU_0 * material.permeability * material.conductivity
        if denom <= 0:
            return math.inf
        return math.sqrt(2.0 / denom)

    @staticmethod
    def calculate_impedance(frequency: float, material: MaterialProperties) -> Complex:
        """Intrinsic wave impedance Z = sqrt(jωμ / (σ + jωε))."""
        if frequency <= 0:
            raise ValueError(f"Frequency must be positive, got {frequency}")
        omega = angular_frequency(frequency)
        mu = MU_0 * material.permeability
        numerator = J * (omega * mu)
        denominator = Complex(material.conductivity, 0.0) + J * (omega * EPSILON_0) * material.permittivity
        return (numerator / denominator).sqrt()

    def calculate_reflection_coefficient(
        self, material1: MaterialProperties, material2: MaterialProperties, frequency: float
    ) -> Complex:
        """Γ = (Z2 - Z1) / (Z2 + Z1) at the interface material1 -> material2."""
        z1 = self.calculate_impedance(frequency, material1)
        z2 = self.calculate_impedance(frequency, material2)
        return (z2 - z1) / (z2 + z1)

    # ------------------------------------------------------------------
    # Rule-based detectors
    # ------------------------------------------------------------------
    def detect_gemstone(
        self,
        conductivity: float,
        permittivity: float,
        permeability: float,
        magnetic_gradient: float,
        anomaly_shape: AnomalyShape,
    ) -> Optional[GemstoneDetection]:
        """
        Gemstone signature: insulating, high permittivity, magnetically quiet,
        compact anomaly. Returns None when any criterion fails.
        """
        cfg = self.config
        if not (
            conductivity < cfg.gemstone_max_conductivity
            and permittivity > cfg.gemstone_min_permittivity
            and abs(magnetic_gradient) < cfg.gemstone_max_gradient
            and anomaly_shape in GEMSTONE_SHAPES
        ):
            return None

        gemstones = [m for m in self._materials.values() if m.is_gemstone]
        if not gemstones:
            return None
        best = min(
            gemstones,
            key=lambda m: abs(m.permittivity.real - permittivity) + abs(m.permeability - permeability),
        )

        confidence = 0.0
        confidence += 0.3  # conductivity criterion
        confidence += 0.2  # permittivity criterion
        if abs(permeability - 1.0) < cfg.gemstone_permeability_tolerance:
            confidence += 0.2
        confidence += 0.1  # magnetic gradient criterion
        confidence += 0.2  # shape criterion

        return GemstoneDetection(
            gemstone_type=best.gemstone_type,
            material=best,
            confidence=clamp_unit(confidence),
            surrounding_minerals=self.detect_surrounding_minerals(conductivity, permittivity, permeability),
        )

    def detect_surrounding_minerals(
        self, conductivity: float, permittivity: float, permeability: float
    ) -> List[MaterialProperties]:
        cfg = self.config
        found = []
        for material in self._materials.values():
            if material.is_gemstone:
                continue
            sigma_match = (
                abs(safe_log10(material.conductivity) - safe_log10(conductivity)) < cfg.mineral_conductivity_decades
            )
            eps_match = abs(material.permittivity.real - permittivity) < cfg.mineral_permittivity_tolerance
            mu_match = abs(material.permeability - permeability) < cfg.mineral_permeability_tolerance
            if sigma_match and (eps_match or mu_match):
                found.append(material)
        return found

    def detect_vein_or_structure(
        self,
        conductivity: float,
        permittivity: float,
        permeability: float,
        magnetic_gradient: float,
        anomaly_shape: AnomalyShape,
        aspect_ratio: float,
        symmetry: float,
        depth: float,
    ) -> Optional[VeinOrStructureDetection]:
        """
        Natural vein vs. artificial structure discrimination.

        Vein: conductive, elongated, asymmetric, deep (or VEIN-shaped and conductive).
        Structure: insulating or strongly metallic, compact, symmetric, shallow
        (or CAVITY-shaped and insulating). Returns None otherwise.
        """
        cfg = self.config

        vein_terms = [
            (conductivity > cfg.vein_min_conductivity, 0.3),
            (aspect_ratio > cfg.vein_min_aspect_ratio, 0.25),
            (symmetry < cfg.vein_max_symmetry, 0.2),
            (depth > cfg.vein_min_depth, 0.15),
            (anomaly_shape in (AnomalyShape.VEIN, AnomalyShape.CREVICE), 0.1),
        ]
        is_vein = all(ok for ok, _ in vein_terms[:4]) or (
            anomaly_shape == AnomalyShape.VEIN and conductivity > cfg.vein_min_conductivity
        )

        insulating = conductivity < cfg.structure_low_conductivity
        structure_terms = [
            (insulating or conductivity > cfg.structure_high_conductivity, 0.3),
            (aspect_ratio < cfg.structure_max_aspect_ratio, 0.25),
            (symmetry > cfg.structure_min_symmetry, 0.2),
            (depth < cfg.structure_max_depth, 0.15),
            (anomaly_shape in (AnomalyShape.CAVITY, AnomalyShape.LAYER), 0.1),
        ]
        is_structure = all(ok for ok, _ in structure_terms[:4]) or (
            anomaly_shape == AnomalyShape.CAVITY and insulating
        )

        if is_vein:
            category, terms = MaterialType.NATURAL_VEIN, vein_terms
        elif is_structure:
            category, terms = MaterialType.ARTIFICIAL_STRUCTURE, structure_terms
        else:
            return None

        material = self.find_matching_material(
            conductivity, permittivity, permeability, candidates=self.get_materials_by_type(category)
        )
        if material is None:
            return None

        confidence = clamp_unit(sum(weight for ok, weight in terms if ok))
        return VeinOrStructureDetection(
            category=category,
            material=material,
            confidence=confidence,
            vein_type=material.vein_type,
            structure_type=material.structure_type,
        )


@lru_cache(maxsize=1)
def _default_database() -> MaterialDatabase:
    return MaterialDatabase()
