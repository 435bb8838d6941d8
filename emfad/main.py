"""
Main CLI Entry Point

EMFAD 재질 분석 엔진 CLI 프로그램.
"""

import argparse
import json
import logging
import sys
from copy import deepcopy
from pathlib import Path
from typing import Any, List, Optional

from pydantic import ValidationError

from emfad.analysis.cluster_analyzer import ClusterAnalyzer
from emfad.config.loader import (
    ConfigError,
    EngineConfig,
    build_config,
    deep_merge,
    default_config_dict,
    load_config,
)
from emfad.converters import classification_summary, to_jsonable
from emfad.core.calibration import AutomaticCalibration
from emfad.core.measurement_mode import parse_mode
from emfad.data.config_manager import ConfigManager
from emfad.pipeline import MaterialAnalysisPipeline, PipelineError
from emfad.schemas import CalibrationDocument, PointsDocument, ReadingInput
from emfad.utils.complex_math import ComplexDivisionError
from emfad.utils.file_io import write_json

logger = logging.getLogger(__name__)


# 로깅 설정
def setup_logging(debug: bool = False):
    """로깅 설정 (stdout, 공통 포맷)"""
    level = logging.DEBUG if debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )

    logging.basicConfig(level=level, handlers=[handler], force=True)


def _load_document(path: str) -> Any:
    """Read a JSON input document; a bare list is wrapped as {"points": [...]}."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        data = {"points": data}
    return data


def _save_output(data: Any, output: Optional[str]):
    if not output:
        return
    write_json(data, Path(output))
    logger.info(f"Result saved to {output}")


def build_pipeline(config: EngineConfig) -> MaterialAnalysisPipeline:
    return MaterialAnalysisPipeline(
        pipeline_config=config.pipeline,
        physics_config=config.physics,
        database_config=config.database,
        crystal_config=config.crystal,
        metal_config=config.metal,
        inclusion_config=config.inclusion,
        calibration_config=config.calibration,
        field_thresholds=config.field_thresholds,
    )


def cmd_analyze(args, config: EngineConfig) -> int:
    """단일 측정값 분석"""
    sweep = None
    if args.sweep:
        with open(args.sweep, "r", encoding="utf-8") as f:
            sweep = json.load(f)

    reading_input = ReadingInput(
        magnetic_field=args.magnetic,
        electric_field=args.electric,
        frequency=args.frequency,
        phase=args.phase,
        depth=args.depth,
        sweep=sweep,
    )
    pipeline = build_pipeline(config)
    result = pipeline.process(reading_input.to_domain(), reading_input.sweep_curve())
    summary = classification_summary(result)

    print("\n" + "=" * 60)
    print("  Material Analysis Result")
    print("=" * 60)
    print(f"  Material:    {result.material_type.name} ({result.material_name or '-'})")
    print(f"  Decided by:  {result.decided_by}")
    print(f"  Confidence:  {result.confidence:.2f}")
    print(f"  Depth:       {result.depth:.2f} m")
    print(f"  Impedance:   {result.physics.impedance}")
    print(f"  Shape:       {result.physics.anomaly_shape.name}")
    if result.physics.gemstone_detection is not None:
        print(f"  Gemstone:    {result.physics.gemstone_detection.material.name}")
    if result.inclusion.has_inclusion:
        print(f"  Inclusion:   {result.inclusion.inclusion_type.name} (size={result.inclusion.size:.3g} m)")
    if result.metal is not None:
        print(f"  Metal sweep: {result.metal.metal_type.name} (confidence={result.metal.confidence:.2f})")
    print("=" * 60 + "\n")

    _save_output({"summary": summary, "result": to_jsonable(result)}, args.output)
    return 0


def cmd_cluster(args, config: EngineConfig) -> int:
    """측정점 군집 분석"""
    document = PointsDocument(**_load_document(args.points))
    points = [p.to_domain() for p in document.points]
    logger.info(f"Loaded {len(points)} measurement points from {args.points}")

    result = ClusterAnalyzer(config.cluster).analyze_clusters(points)

    print("\n" + "=" * 60)
    print("  Cluster Analysis")
    print("=" * 60)
    print(f"  Points:      {len(points)}")
    print(f"  Clusters:    {len(result.clusters)}")
    print(f"  Outliers:    {len(result.outliers)}")
    print(f"  Confidence:  {result.confidence:.2f}")
    for i, cluster in enumerate(result.clusters):
        c = cluster.centroid
        print(
            f"    #{i}: {cluster.type.name}, {cluster.size} points, "
            f"centroid=({c.x:.2f}, {c.y:.2f}, {c.z:.2f}), radius={cluster.radius:.2f}"
        )
    print("=" * 60 + "\n")

    _save_output(to_jsonable(result), args.output)
    return 0


def cmd_calibrate(args, config: EngineConfig) -> int:
    """기준점으로 보정 계수 계산"""
    mode = parse_mode(args.mode)
    document = CalibrationDocument(**_load_document(args.points))
    engine = AutomaticCalibration(mode, config.calibration)
    for point in document.points:
        engine.add_calibration_point(point.to_domain(mode))

    result = engine.calibrate()

    print("\n" + "=" * 60)
    print("  Calibration Result")
    print("=" * 60)
    print(f"  Mode:        {result.mode.name}")
    print(f"  Success:     {result.success}")
    print(f"  Factor:      {result.calibration_factor:.4f}")
    print(f"  Confidence:  {result.confidence:.2f}")
    print(f"  Points used: {result.points_used}/{len(engine.get_calibration_points())}")
    print("=" * 60 + "\n")

    _save_output(to_jsonable(result), args.output)
    return 0 if result.success else 1


def cmd_config(args, config: EngineConfig) -> int:
    """설정 조회/수정 (dotted key)"""
    if args.config:
        manager = ConfigManager(path=Path(args.config))
    else:
        manager = ConfigManager(data=default_config_dict())

    for item in args.set or []:
        key, sep, raw = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"--set expects key=value, got '{item}'")
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            value = raw
        manager.set(key.strip(), value)

    # 수정 결과도 유효한 설정이어야 함
    build_config(deep_merge(default_config_dict(), deepcopy(manager.as_dict())))

    shown = manager.get(args.get) if args.get else manager.as_dict()
    print(json.dumps(to_jsonable(shown), indent=2, ensure_ascii=False))

    if args.output:
        manager.save(Path(args.output))
        logger.info(f"Config saved to {args.output}")
    return 0


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="Config override JSON path")
    common.add_argument("--output", help="Output JSON file path")
    common.add_argument("--debug", action="store_true", help="Enable debug logging")
    return common


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="EMFAD Material Analysis Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")
    common = _common_options()

    # ========== analyze ==========
    analyze_parser = subparsers.add_parser(
        "analyze",
        parents=[common],
        help="Analyze a single reading",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m emfad analyze --magnetic 120 --electric 10 --frequency 1000 --phase 0.2 --depth 1.0
  python -m emfad analyze --magnetic 5 --electric 40 --frequency 1000 --depth 0.5 --sweep sweep.json
        """,
    )
    analyze_parser.add_argument("--magnetic", type=float, required=True, help="Magnetic field (µT)")
    analyze_parser.add_argument("--electric", type=float, required=True, help="Electric field (V/m)")
    analyze_parser.add_argument("--frequency", type=float, required=True, help="Frequency (Hz)")
    analyze_parser.add_argument("--phase", type=float, default=0.0, help="E/H phase difference (rad)")
    analyze_parser.add_argument("--depth", type=float, required=True, help="Depth hint (m)")
    analyze_parser.add_argument("--sweep", help="Frequency sweep JSON ([{frequency, impedance: {real, imag}}])")

    # ========== cluster ==========
    cluster_parser = subparsers.add_parser("cluster", parents=[common], help="Cluster measurement points")
    cluster_parser.add_argument("points", help="Measurement points JSON path")

    # ========== calibrate ==========
    calibrate_parser = subparsers.add_parser("calibrate", parents=[common], help="Compute a calibration factor")
    calibrate_parser.add_argument("points", help="Calibration points JSON path")
    calibrate_parser.add_argument("--mode", default="BA_VERTICAL", help="Measurement mode")

    # ========== config ==========
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show or edit settings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m emfad config --get cluster.outlier_sigma
  python -m emfad config --set crystal.alpha=2.0 --output override.json
        """,
    )
    config_parser.add_argument("--get", help="Dotted key to print (default: whole document)")
    config_parser.add_argument("--set", action="append", help="key=value override (repeatable)")

    return parser


COMMANDS = {
    "analyze": cmd_analyze,
    "cluster": cmd_cluster,
    "calibrate": cmd_calibrate,
    "config": cmd_config,
}


def main(argv: Optional[List[str]] = None) -> int:
    """메인 함수"""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Show help if no command
    if not args.command:
        parser.print_help()
        return 0

    setup_logging(args.debug)

    try:
        config = load_config(args.config)
        return COMMANDS[args.command](args, config)

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1

    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON input: {e}")
        return 1

    except ValidationError as e:
        logger.error(f"Invalid input: {e}")
        return 1

    except (ConfigError, PipelineError, ComplexDivisionError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
