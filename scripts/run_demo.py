import sys, pathlib, logging
ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))
from cumulus.bootstrap.main import run_app
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    run_app(config_path=str(ROOT / "configs" / "demo.yaml"))
