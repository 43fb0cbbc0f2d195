# evotrees/utils/env.py
from dotenv import load_dotenv
from pathlib import Path
import os


def load_env(dotenv_dir=None):
    """
    Carga variables de entorno desde el archivo .env (si existe)
    y devuelve un diccionario con las variables que usa el pipeline.
    """
    dotenv_path = Path(dotenv_dir or ".") / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path)
        print(f"[INFO] Loaded environment from {dotenv_path}")
    else:
        print("[WARN] No .env found, using system environment variables.")

    return {
        "EVOTREES_BASE_DIR": os.getenv("EVOTREES_BASE_DIR"),
        "SEED": os.getenv("SEED"),
        "N_JOBS_FRACTION": os.getenv("N_JOBS_FRACTION"),
        "USE_MLFLOW": os.getenv("USE_MLFLOW"),
        "EXPERIMENT_NAME": os.getenv("EXPERIMENT_NAME", "pokemon-evolution"),
        "MLFLOW_TRACKING_URI": os.getenv("MLFLOW_TRACKING_URI"),
    }
