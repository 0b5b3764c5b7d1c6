"""Go / gorilla-mux backend."""

from mcp_forge.generator.backend import Backend
from mcp_forge.generator.files import ServerFile
from mcp_forge.generator.ir import RouteTable


class GoBackend(Backend):
    """Renders a single ``package main`` module routed with gorilla/mux."""

    language = "Go"
    aliases = ("go", "golang", "mux")
    template_dir = "go"
    port = 8080
    aws_runtime = "provided.al2"
    aws_handler = "bootstrap"
    gcp_runtime = "go122"
    install_command = "go mod tidy"
    build_command = "go build -o server ."
    start_command = "./server"
    azure_executable = "server"

    def _source_files(self, table: RouteTable) -> list[ServerFile]:
        files = [
            self._file("go.mod", self.render("go.mod.j2", table=table), "config", "go"),
            self._file("main.go", self.render("main.go.j2", table=table), "code", "go"),
            self._file("envelope.go", self.render("envelope.go.j2", table=table), "code", "go"),
            self._file("resources.go", self.render("resources.go.j2", table=table), "code", "go"),
            self._file("tools.go", self.render("tools.go.j2", table=table), "code", "go"),
            self._file("models.go", self.render("models.go.j2", table=table), "code", "go"),
        ]
        if table.auth.enabled:
            files.append(self._file("auth.go", self.render("auth.go.j2", table=table), "code", "go"))
        files.append(self._file("Dockerfile", self.render("Dockerfile.j2", table=table), "config", "dockerfile"))
        return files
