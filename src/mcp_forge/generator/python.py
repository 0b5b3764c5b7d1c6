"""Python / FastAPI backend."""

from mcp_forge.generator.backend import Backend
from mcp_forge.generator.files import ServerFile
from mcp_forge.generator.ir import RouteTable


class PythonBackend(Backend):
    """Renders a FastAPI project with one APIRouter per capability kind."""

    language = "Python"
    aliases = ("python", "py", "fastapi")
    template_dir = "python"
    port = 8000
    aws_runtime = "python3.12"
    aws_handler = "main.handler"
    gcp_runtime = "python312"
    gcp_entrypoint = "uvicorn main:app --host 0.0.0.0 --port $PORT"
    install_command = "pip install -r requirements.txt"
    start_command = "python main.py"
    azure_executable = "python"
    azure_arguments = ("main.py",)

    def _source_files(self, table: RouteTable) -> list[ServerFile]:
        files = [
            self._file("main.py", self.render("main.py.j2", table=table), "code", "python"),
            self._file("routes/__init__.py", "", "code", "python"),
            self._file("routes/envelope.py", self.render("envelope.py.j2", table=table), "code", "python"),
            self._file("routes/resources.py", self.render("resources.py.j2", table=table), "code", "python"),
            self._file("routes/tools.py", self.render("tools.py.j2", table=table), "code", "python"),
            self._file("models.py", self.render("models.py.j2", table=table), "code", "python"),
        ]
        if table.auth.enabled:
            files.append(self._file("middleware/__init__.py", "", "code", "python"))
            files.append(self._file("middleware/auth.py", self.render("auth.py.j2", table=table), "code", "python"))
        files.append(self._file("requirements.txt", self.render("requirements.txt.j2", table=table), "config", "plaintext"))
        files.append(self._file("Dockerfile", self.render("Dockerfile.j2", table=table), "config", "dockerfile"))
        return files
