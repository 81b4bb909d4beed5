from pathlib import Path
from typing import Union

from config import config
from core.exceptions import RecorderWriteError
from utils.logger import setup_logger

logger = setup_logger("recorder")


class ChainRecorder:
    """Grava cada próximo nome descoberto em nwalk_out/nsec-<domínio>.txt"""

    def __init__(self, output_dir: Union[str, Path] = config.OUTPUT_DIR):
        self.output_dir = Path(output_dir)

    def path_for(self, domain: str) -> Path:
        return self.output_dir / f"nsec-{domain}.txt"

    def _append(self, domain: str, next_name: str):
        path = self.path_for(domain)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(next_name + "\n")
        except OSError as e:
            raise RecorderWriteError(f"Erro ao gravar {path}: {e}", path=str(path), original_error=e)

    def record(self, domain: str, next_name: str) -> bool:
        """
        Acrescenta next_name ao arquivo do domínio.

        Uma falha de escrita é registrada no log e não interrompe a caminhada.
        """
        try:
            self._append(domain, next_name)
        except RecorderWriteError as e:
            logger.error(e.message)
            return False
        return True
