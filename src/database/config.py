import os
import pathlib

_default_data_dir = pathlib.Path(__file__).parent.parent.parent / "data"
DATABASE_PATH = pathlib.Path(
    os.getenv("COEF_COMPARE_DB_PATH", str(_default_data_dir / "model_fits.sqlite"))
)
DATABASE_URL = f"sqlite:///{DATABASE_PATH}"
