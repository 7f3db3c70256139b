"""
YOLOv4 Detector CLI Entrypoint.

Responsibility:
    Parse command-line arguments, configure the application, manage the
    model store, wire together the detector and I/O handlers, and run the
    main processing loop.

Usage:
    python main.py --source 0                          # Webcam, built-in model
    python main.py --source images/ --output-mode save_json
    python main.py --source video.mp4 --output-mode save_video --nms 0.5
    python main.py --list-models
    python main.py --import-model my-model --weights a.weights --cfg a.cfg --names a.names
    python main.py --model <id> --source 0

This module is the executable entry point. It should not be imported
by other modules.
"""

import argparse
import logging
import sys
import time
from dataclasses import replace

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")

from yolov4_detector.config import AppConfig, ModelConfig, load_config, resolve_path, validate
from yolov4_detector.detector import Detector
from yolov4_detector.input_handler import InputHandler
from yolov4_detector.model_store import ModelStore
from yolov4_detector.output_handler import OutputHandler
from yolov4_detector.stats import StatsTracker


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="YOLOv4 object detection with OpenCV DNN",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--source",
        type=str,
        help="Input source: '0' for webcam, path to image/video file, or directory.",
    )
    parser.add_argument("--config", type=str, help="Path to YAML configuration file.")
    parser.add_argument(
        "--confidence",
        type=float,
        help="Detection confidence threshold (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--nms",
        type=float,
        help="Non-max suppression IoU threshold (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["cpu", "cuda"],
        help="Compute backend preference. Overrides config.",
    )
    parser.add_argument(
        "--output-mode",
        type=str,
        help="Comma-separated output modes: display, save_image, save_video, "
             "save_json, save_csv, save_preprocessed. Overrides config.",
    )
    parser.add_argument(
        "--output-path",
        type=str,
        help="Path/directory for output artifacts. Overrides config.",
    )

    models = parser.add_argument_group("model store")
    models.add_argument("--model", type=str, help="Id of the stored model to use (and select).")
    models.add_argument("--list-models", action="store_true", help="List stored models and exit.")
    models.add_argument("--import-model", metavar="NAME", type=str,
                        help="Import --weights/--cfg/--names under NAME and exit.")
    models.add_argument("--delete-model", metavar="ID", type=str,
                        help="Delete an imported model and exit.")
    models.add_argument("--weights", type=str, help="Darknet .weights file for --import-model.")
    models.add_argument("--cfg", type=str, help="Darknet .cfg file for --import-model.")
    models.add_argument("--names", type=str, help="Class names file for --import-model.")

    return parser.parse_args(argv)


def apply_cli_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a validated copy of config with CLI arguments applied."""
    if args.source is not None:
        config = replace(config, input=replace(config.input, source=args.source))
    if args.confidence is not None:
        config = replace(config, detection=replace(
            config.detection, confidence_threshold=args.confidence))
    if args.nms is not None:
        config = replace(config, detection=replace(config.detection, nms_threshold=args.nms))
    if args.backend is not None:
        config = replace(config, model=replace(config.model, backend=args.backend))
    if args.output_mode is not None:
        config = replace(config, output=replace(config.output, mode=args.output_mode.lower()))
    if args.output_path is not None:
        config = replace(config, output=replace(config.output, save_path=args.output_path))
    if args.model is not None:
        config = replace(config, storage=replace(config.storage, selected_model_id=args.model))
    return validate(config)


def configure_model(config: AppConfig, store: ModelStore) -> AppConfig:
    """Point config.model at the files of the selected stored model.

    Model paths set explicitly in YAML or the environment are kept unless
    a model id was also requested.
    """
    defaults = ModelConfig()
    explicit_paths = (
        config.model.weights_path, config.model.config_path, config.model.names_path,
    ) != (defaults.weights_path, defaults.config_path, defaults.names_path)
    if explicit_paths and config.storage.selected_model_id is None:
        logger.info("Using model files from configuration.")
        return config

    model = store.resolve_selected(config.storage.selected_model_id)
    if config.storage.selected_model_id is not None:
        store.selected_model_id = model.id

    weights, cfg, names = store.get_model_paths(model)
    logger.info("Using model '%s' (%s)", model.display_name, model.input_size_description)
    return replace(config, model=replace(
        config.model,
        weights_path=str(weights),
        config_path=str(cfg),
        names_path=str(names),
    ))


def run_model_command(args: argparse.Namespace, store: ModelStore) -> int:
    """Handle --list-models / --import-model / --delete-model."""
    if args.list_models:
        selected = store.selected_model_id
        for model in store.load_models():
            marker = "*" if model.id == selected else " "
            tag = " [built-in]" if model.is_built_in else ""
            print(f"{marker} {model.id}  {model.display_name}{tag}  "
                  f"{model.input_size_description}  {model.class_count} classes")
        return 0

    if args.import_model is not None:
        if not (args.weights and args.cfg and args.names):
            logger.error("--import-model requires --weights, --cfg and --names.")
            return 1
        model = store.import_model(args.import_model, args.weights, args.cfg, args.names)
        print(model.id)
        return 0

    model = store.get_model(args.delete_model)
    if model is None:
        logger.error("No stored model with id '%s'.", args.delete_model)
        return 1
    store.delete_model(model)
    return 0


def main(argv=None) -> int:
    """Main execution loop."""
    args = parse_args(argv)

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = apply_cli_overrides(load_config(args.config), args)
        store = ModelStore(resolve_path(config.storage.models_dir))
    except Exception as e:
        logger.error("Configuration error: %s", e)
        return 1

    # 2. Model store commands
    if args.list_models or args.import_model is not None or args.delete_model is not None:
        try:
            return run_model_command(args, store)
        except (FileNotFoundError, ValueError, OSError) as e:
            logger.error("Model store error: %s", e)
            return 1

    # 3. Initialize Components
    input_handler = None
    try:
        config = configure_model(config, store)
        detector = Detector(config)
        input_handler = InputHandler(
            source=config.input.source,
            resize_width=config.input.resize_width,
        )
        output_handler = OutputHandler(config, fps=input_handler.fps)
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error("Initialization failed: %s", e)
        if input_handler is not None:
            input_handler.release()
        return 1
    except Exception as e:
        logger.exception("Unexpected initialization error: %s", e)
        if input_handler is not None:
            input_handler.release()
        return 1

    # 4. Processing Loop
    logger.info("Starting processing loop. Press 'q' or ESC to quit in display mode.")

    stats = StatsTracker()
    frame_count = 0
    start_time = time.perf_counter()

    try:
        for frame_id, frame in input_handler:
            frame_count += 1

            if input_handler.is_live:
                frame = detector.orient_frame(frame)
                detections = detector.detect_frame(frame)
            else:
                detections = detector.detect_image(frame, channel_order="bgr")

            stats.record(detector.last_inference_time, len(detections))

            if frame_count % 30 == 0:
                logger.info("Processed %d frames...", frame_count)

            should_continue = output_handler.process_frame(
                frame_id,
                frame,
                detections,
                stats=stats.stats,
                preprocessed=detector.last_preprocessed_image,
            )
            if not should_continue:
                logger.info("Stopping loop per user request.")
                break

    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    except Exception as e:
        logger.exception("Runtime error during processing: %s", e)
        return 1
    finally:
        # 5. Cleanup
        elapsed = time.perf_counter() - start_time
        fps = frame_count / elapsed if elapsed > 0 else 0.0

        input_handler.release()
        output_handler.finalize()

        logger.info(
            "Processing finished. Total frames: %d. Avg FPS: %.2f.",
            frame_count, fps
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
