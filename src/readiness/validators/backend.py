from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ..results import ValidationResults
from ..rules import (
    DependencyAudit,
    DocumentKeys,
    Expect,
    FileContains,
    FunctionCheck,
    KeyExpect,
    SecretScan,
    Section,
    SourceContains,
    files_exist,
    load_document,
)
from .base import ValidationContext, Validator, governance_section

SOURCE_DIRS = ("src",)
TS = (".ts",)
JS_TS = (".js", ".ts")
SWAGGER_PATH = "src/swagger.yaml"
HTTP_METHODS = frozenset({"get", "put", "post", "delete", "options", "head", "patch", "trace"})


class BackendValidator(Validator):
    name = "backend"
    title = "Backend Development"

    def sections(self) -> Sequence[Section]:
        return (
            Section(
                "Checking API Design...",
                "API validation",
                (
                    DocumentKeys(
                        SWAGGER_PATH,
                        (
                            KeyExpect(
                                "info.version",
                                "API versioning implemented",
                                "API versioning not found",
                            ),
                            KeyExpect(
                                "components.securitySchemes",
                                "Security schemes defined",
                                "No security schemes defined",
                            ),
                        ),
                        absent="No OpenAPI/Swagger documentation found",
                        label="API documentation",
                    ),
                    FunctionCheck(self.check_response_schemas),
                    SourceContains(
                        SOURCE_DIRS,
                        JS_TS,
                        ("@Controller", "@Get(", "router.get(", "app.get(", "router.post("),
                        "API endpoints defined",
                        "No API endpoint definitions found",
                    ),
                    SourceContains(
                        SOURCE_DIRS,
                        JS_TS,
                        ("ThrottlerModule", "@Throttle", "express-rate-limit", "rateLimit("),
                        "Rate limiting implemented",
                        "No rate limiting found",
                    ),
                    SecretScan(SOURCE_DIRS, (".js", ".ts", ".env")),
                    DependencyAudit(),
                ),
            ),
            Section(
                "Checking Database Configuration...",
                "Database validation",
                (
                    FileContains(
                        "prisma/schema.prisma",
                        (
                            Expect(
                                ("model",), "Database models defined", "No database models found"
                            ),
                            Expect(
                                ("@relation",),
                                "Model relations defined",
                                "No model relations found",
                            ),
                            Expect(
                                ("@@index",),
                                "Database indexes defined",
                                "No database indexes found",
                            ),
                        ),
                        absent="Database schema check failed: {path} not found",
                        label="Database schema",
                    ),
                    *files_exist(
                        ("prisma/migrations",),
                        "Database migrations tracked: {path}",
                        "No database migrations found: {path}",
                    ),
                    SourceContains(
                        SOURCE_DIRS,
                        TS,
                        ("$queryRaw", "EXPLAIN", "slowQuery", "log: ['query'"),
                        "Query performance instrumentation found",
                        "No query performance instrumentation found",
                    ),
                ),
            ),
            Section(
                "Checking Security Controls...",
                "Security validation",
                (
                    SourceContains(
                        SOURCE_DIRS,
                        TS,
                        ("@UseGuards", "AuthGuard"),
                        "Authentication guards implemented",
                        "No authentication guards found",
                    ),
                    SourceContains(
                        SOURCE_DIRS,
                        TS,
                        ("jwt.verify", "JwtService"),
                        "JWT authentication implemented",
                        "No JWT implementation found",
                    ),
                    SourceContains(
                        SOURCE_DIRS,
                        TS,
                        ("@Roles", "RolesGuard", "CaslAbility", "@Permissions"),
                        "Authorization controls implemented",
                        "No authorization controls found",
                    ),
                    SourceContains(
                        SOURCE_DIRS,
                        TS,
                        ("class-validator", "@IsString", "zod", "Joi."),
                        "Input validation implemented",
                        "No input validation found",
                    ),
                ),
            ),
            Section(
                "Checking Performance Optimizations...",
                "Performance validation",
                (
                    SourceContains(
                        SOURCE_DIRS,
                        TS,
                        ("@CacheInterceptor", "CacheModule"),
                        "Caching implemented",
                        "No caching implementation found",
                    ),
                    SourceContains(
                        SOURCE_DIRS,
                        TS,
                        ("Redis", "RedisModule"),
                        "Redis caching implemented",
                        "No Redis implementation found",
                    ),
                    SourceContains(
                        SOURCE_DIRS,
                        JS_TS,
                        ("connection_limit", "connectionLimit", "poolSize", "pool:"),
                        "Connection pooling configured",
                        "No connection pooling configuration found",
                    ),
                    SourceContains(
                        SOURCE_DIRS,
                        TS,
                        ("select: {", "take:", "skip:", "cursor:"),
                        "Query optimization patterns found",
                        "No query optimization patterns found",
                    ),
                ),
            ),
            Section(
                "Checking Error Handling...",
                "Error handling validation",
                (
                    SourceContains(
                        SOURCE_DIRS,
                        JS_TS,
                        ("ExceptionFilter", "@Catch(", "errorHandler"),
                        "Global error handler implemented",
                        "No global error handler found",
                    ),
                    SourceContains(
                        SOURCE_DIRS,
                        TS,
                        (r"class \w+Error extends", r"class \w+Exception extends"),
                        "Domain errors defined",
                        "No domain error types found",
                        regex=True,
                    ),
                    SourceContains(
                        SOURCE_DIRS,
                        TS,
                        ("ValidationPipe",),
                        "Validation pipes configured",
                        "No validation pipes found",
                    ),
                ),
            ),
            Section(
                "Checking Backend Security Controls...",
                "Backend security validation",
                (
                    *files_exist(
                        ("config/secrets.yml", "src/config/vault.js", ".env.example"),
                        "Secrets management config found: {path}",
                        "Missing secrets management config: {path}",
                    ),
                    *files_exist(
                        ("src/middleware/security.js", "config/security-headers.json"),
                        "Security headers implementation found: {path}",
                        "Missing security headers implementation: {path}",
                    ),
                    *files_exist(
                        (
                            "src/middleware/audit.js",
                            "config/logging.yml",
                            "src/utils/security-logger.js",
                        ),
                        "Audit logging implementation found: {path}",
                        "Missing audit logging implementation: {path}",
                    ),
                ),
            ),
            governance_section(self.name),
        )

    def check_response_schemas(self, ctx: ValidationContext, results: ValidationResults) -> None:
        target = ctx.path(SWAGGER_PATH)
        if not target.is_file():
            return
        spec: Any = load_document(target, "yaml")
        paths = spec.get("paths") if isinstance(spec, dict) else None
        for operations in (paths or {}).values():
            if not isinstance(operations, dict):
                continue
            for method, operation in operations.items():
                if method in HTTP_METHODS and isinstance(operation, dict):
                    if operation.get("responses"):
                        results.pass_("Response schemas defined")
                        return
        results.warn("No response schemas found")
