"""TypeScript / Express backend."""

from mcp_forge.generator.backend import Backend
from mcp_forge.generator.files import ServerFile
from mcp_forge.generator.ir import RouteTable


class TypeScriptBackend(Backend):
    """Renders an Express project compiled with ``tsc`` in strict mode."""

    language = "TypeScript"
    aliases = ("typescript", "ts", "node", "express")
    template_dir = "typescript"
    port = 3000
    aws_runtime = "nodejs20.x"
    aws_handler = "dist/index.handler"
    gcp_runtime = "nodejs20"
    gcp_entrypoint = "node dist/index.js"
    install_command = "npm install"
    build_command = "npm run build"
    start_command = "npm start"
    azure_executable = "node"
    azure_arguments = ("dist/index.js",)

    def _source_files(self, table: RouteTable) -> list[ServerFile]:
        files = [
            self._file("package.json", self.render("package.json.j2", table=table), "config", "json"),
            self._file("tsconfig.json", self.render("tsconfig.json.j2", table=table), "config", "json"),
            self._file("src/index.ts", self.render("index.ts.j2", table=table), "code", "typescript"),
            self._file("src/envelope.ts", self.render("envelope.ts.j2", table=table), "code", "typescript"),
            self._file("src/routes/resources.ts", self.render("resources.ts.j2", table=table), "code", "typescript"),
            self._file("src/routes/tools.ts", self.render("tools.ts.j2", table=table), "code", "typescript"),
            self._file("src/models.ts", self.render("models.ts.j2", table=table), "code", "typescript"),
        ]
        if table.auth.enabled:
            files.append(self._file(
                "src/middleware/auth.ts", self.render("auth.ts.j2", table=table), "code", "typescript",
            ))
        files.append(self._file("Dockerfile", self.render("Dockerfile.j2", table=table), "config", "dockerfile"))
        return files
