"""

 OMR Layout Studio

 Template layout editor and camera alignment overlay for OMR answer sheets.

"""

import argparse
import sys
from pathlib import Path

from src.defaults.config import load_config
from src.logger import logger


def parse_args(argv=None):
    # construct the argument parse and parse the arguments
    argparser = argparse.ArgumentParser()

    argparser.add_argument(
        "--gui",
        required=False,
        dest="gui",
        action="store_true",
        help="Launch the layout editor window.",
    )

    argparser.add_argument(
        "--camera",
        required=False,
        dest="camera",
        action="store_true",
        help="Launch the camera capture window with the template overlay.",
    )

    argparser.add_argument(
        "-t",
        "--template",
        required=False,
        dest="template",
        type=Path,
        help="Path to a template.json file.",
    )

    argparser.add_argument(
        "-c",
        "--config",
        required=False,
        dest="config",
        type=Path,
        help="Path to a config.json overriding the tuning defaults.",
    )

    argparser.add_argument(
        "--add-blocks",
        required=False,
        default=0,
        type=int,
        dest="add_blocks",
        help="Append this many default field blocks before rendering or saving.",
    )

    argparser.add_argument(
        "--render",
        required=False,
        dest="render",
        type=Path,
        help="Render a preview of the layout to this image file.",
    )

    argparser.add_argument(
        "--save",
        required=False,
        dest="save",
        type=Path,
        help="Write the (possibly modified) template JSON to this file.",
    )

    argparser.add_argument(
        "-o",
        "--outputDir",
        default="outputs",
        required=False,
        type=Path,
        dest="output_dir",
        help="Directory for captured images.",
    )

    (
        args,
        unknown,
    ) = argparser.parse_known_args(argv)

    args = vars(args)

    if len(unknown) > 0:
        logger.warning(f"\nError: Unknown arguments: {unknown}")
        argparser.print_help()
        exit(11)
    return args


def run_headless(args) -> None:
    from omr_layout.core.editor_session import LayoutEditorSession
    from omr_layout.core.errors import InvalidTemplate
    from omr_layout.core.render_pipeline import rasterize

    session = LayoutEditorSession(config=load_config(args["config"]))
    if args["template"]:
        try:
            session.load(args["template"])
        except (InvalidTemplate, OSError) as exc:
            logger.error(f"Could not load {args['template']}:", exc)
            raise SystemExit(1) from exc
    for _ in range(max(0, args["add_blocks"])):
        session.add_block()

    if args["render"]:
        image = rasterize(session.render(), session.canvas_size)
        args["render"].parent.mkdir(parents=True, exist_ok=True)
        image.convert("RGB").save(args["render"])
        logger.info(f"Rendered layout preview to {args['render']}")
    if args["save"]:
        session.save(args["save"])


def launch_gui(args) -> None:
    try:
        from omr_layout.app import main as gui_main
    except ImportError as exc:  # pragma: no cover - depends on GUI deps/runtime
        logger.error("Failed to launch GUI:", exc)
        logger.error(
            "Tip: install GUI dependencies (e.g. `pip install -e .`) and run from the repo root."
        )
        raise SystemExit(1) from exc

    raise SystemExit(
        gui_main(
            template_path=args["template"],
            camera=args["camera"],
            output_dir=args["output_dir"],
            config=load_config(args["config"]),
        )
    )


if __name__ == "__main__":
    args = parse_args()
    if args["gui"] or args["camera"] or (len(sys.argv) == 1):
        launch_gui(args)
    else:
        run_headless(args)
