"""Built-in rule table for well-known failure signatures.

Rules short-circuit unambiguous failures with deterministic answers so the
reasoning engine is only consulted for novel or ambiguous input.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ..errors import InvalidConfigError
from ..models import AnalysisResult, Rule, Severity


def _rule(
    *,
    id: str,
    name: str,
    description: str,
    keywords: Iterable[str],
    patterns: Iterable[str],
    confidence: float,
    error_type: str,
    severity: Severity,
    root_cause: str,
    suggested_actions: Iterable[str],
    prevention_tips: Iterable[str],
) -> Rule:
    return Rule(
        id=id,
        name=name,
        description=description,
        keywords=tuple(keywords),
        patterns=tuple(re.compile(p, re.IGNORECASE) for p in patterns),
        confidence=confidence,
        result=AnalysisResult(
            error_type=error_type,
            severity=severity,
            root_cause=root_cause,
            suggested_actions=tuple(suggested_actions),
            prevention_tips=tuple(prevention_tips),
        ),
    )


def _docker_build_permission() -> Rule:
    return _rule(
        id="docker_build_permission",
        name="Docker Build Permission Denied",
        description="Docker build failures caused by permission issues.",
        keywords=("docker build", "permission denied"),
        patterns=(
            r"docker.*build.*permission\s+denied",
            r"error.*docker.*EACCES",
        ),
        confidence=0.9,
        error_type="docker_permission_denied",
        severity=Severity.HIGH,
        root_cause=(
            "Docker build failed due to insufficient permissions. This typically occurs when "
            "the user running Docker cannot access required files or the Docker socket."
        ),
        suggested_actions=(
            "Ensure the user is in the 'docker' group: sudo usermod -aG docker $USER",
            "Check file permissions in the build context",
            "If using CI/CD, ensure the runner has Docker socket access",
            "Verify Dockerfile COPY/ADD commands reference accessible files",
        ),
        prevention_tips=(
            "Run Docker with appropriate user permissions",
            "Use multi-stage builds with proper ownership",
            "Configure CI/CD runners with Docker access",
        ),
    )


def _docker_daemon_not_running() -> Rule:
    return _rule(
        id="docker_daemon_not_running",
        name="Docker Daemon Not Running",
        description="The Docker daemon is not reachable.",
        keywords=("cannot connect to the docker daemon", "docker daemon is not running"),
        patterns=(
            r"cannot connect to the docker daemon",
            r"is the docker daemon running",
            r"docker\.sock.*no such file",
        ),
        confidence=0.95,
        error_type="docker_daemon_unavailable",
        severity=Severity.HIGH,
        root_cause=(
            "The Docker daemon is not running or not accessible. Docker commands require a "
            "running daemon to execute."
        ),
        suggested_actions=(
            "Start the Docker daemon: sudo systemctl start docker",
            "Check Docker service status: sudo systemctl status docker",
            "Verify Docker installation: docker --version",
            "If using Docker Desktop, ensure the application is running",
        ),
        prevention_tips=(
            "Enable Docker to start on boot: sudo systemctl enable docker",
            "Monitor Docker daemon health in production",
            "Use Docker healthchecks in CI/CD pipelines",
        ),
    )


def _npm_install_failure() -> Rule:
    return _rule(
        id="npm_install_failure",
        name="NPM Install Failure",
        description="npm install failures.",
        keywords=("npm err!",),
        patterns=(
            r"npm ERR!.*code\s+E[A-Z]+",
            r"npm ERR!.*404.*not found",
            r"npm ERR!.*peer dep",
        ),
        confidence=0.85,
        error_type="npm_install_failure",
        severity=Severity.MEDIUM,
        root_cause=(
            "NPM package installation failed. This could be due to missing packages, version "
            "conflicts, network issues, or a corrupted cache."
        ),
        suggested_actions=(
            "Clear npm cache: npm cache clean --force",
            "Delete node_modules and package-lock.json, then reinstall",
            "Check if the package exists and the version is correct",
            "Verify network connectivity to the npm registry",
            "Check for peer dependency conflicts",
        ),
        prevention_tips=(
            "Lock dependency versions in package-lock.json",
            "Use npm ci in CI/CD for reproducible builds",
            "Regularly update dependencies to avoid conflicts",
        ),
    )


def _out_of_memory() -> Rule:
    return _rule(
        id="out_of_memory",
        name="Out of Memory",
        description="Processes killed or failing for lack of memory.",
        keywords=("out of memory", "oomkilled", "memory allocation failed", "heap out of memory"),
        patterns=(
            r"out\s+of\s+memory",
            r"OOMKilled",
            r"Cannot allocate memory",
            r"JavaScript heap out of memory",
            r"java\.lang\.OutOfMemoryError",
        ),
        confidence=0.95,
        error_type="out_of_memory",
        severity=Severity.HIGH,
        root_cause=(
            "The process exhausted available memory and was terminated. This can be caused by "
            "memory leaks, insufficient resource limits, or processing large datasets."
        ),
        suggested_actions=(
            "Increase memory limits for the container/process",
            "Profile the application for memory leaks",
            "Implement pagination for large data processing",
            "Check for unbounded caches or collections",
            "Review Kubernetes resource limits",
        ),
        prevention_tips=(
            "Set appropriate memory limits based on profiling",
            "Implement memory monitoring and alerting",
            "Use streaming for large file processing",
            "Run regular load tests with realistic data volumes",
        ),
    )


def _connection_timeout() -> Rule:
    return _rule(
        id="connection_timeout",
        name="Connection Timeout",
        description="Network-level connection timeouts and refusals.",
        keywords=("connection timed out", "etimedout", "connection refused", "dial tcp"),
        patterns=(
            r"connection\s+timed?\s*out",
            r"ETIMEDOUT",
            r"ECONNREFUSED",
            r"dial tcp.*timeout",
            r"i/o timeout",
            r"connect:.*timeout",
        ),
        confidence=0.85,
        error_type="connection_timeout",
        severity=Severity.MEDIUM,
        root_cause=(
            "A network connection attempt timed out. The target service may be down, the "
            "network or a firewall may be blocking traffic, or the host/port is misconfigured."
        ),
        suggested_actions=(
            "Verify the target service is running and healthy",
            "Check network connectivity: ping, telnet, curl",
            "Review firewall rules and security groups",
            "Verify the host and port configuration",
            "Check DNS resolution",
        ),
        prevention_tips=(
            "Implement health checks for dependencies",
            "Use circuit breakers for external services",
            "Configure appropriate timeout values",
            "Add retry logic with exponential backoff",
        ),
    )


def _ssl_certificate_error() -> Rule:
    return _rule(
        id="ssl_certificate_error",
        name="SSL Certificate Error",
        description="TLS certificate validation failures.",
        keywords=("certificate verify failed", "certificate expired"),
        patterns=(
            r"certificate\s+verify\s+failed",
            r"SSL.*certificate.*expired",
            r"unable to verify the first certificate",
            r"self.signed certificate",
            r"x509.*certificate",
        ),
        confidence=0.9,
        error_type="ssl_certificate_error",
        severity=Severity.HIGH,
        root_cause=(
            "SSL/TLS certificate validation failed. The certificate may be expired, "
            "self-signed, issued by an untrusted CA, or the hostname does not match."
        ),
        suggested_actions=(
            "Check the certificate expiration date",
            "Verify the certificate chain is complete",
            "Ensure the CA is trusted in the system trust store",
            "Verify the hostname matches the certificate CN/SAN",
            "For internal services, add the CA to trusted certificates",
        ),
        prevention_tips=(
            "Set up certificate expiration monitoring",
            "Use automated certificate renewal (Let's Encrypt)",
            "Implement certificate rotation procedures",
            "Document internal CA trust requirements",
        ),
    )


def _disk_space_full() -> Rule:
    return _rule(
        id="disk_space_full",
        name="Disk Space Full",
        description="Disk space or quota exhaustion.",
        keywords=("no space left on device", "disk full", "enospc"),
        patterns=(
            r"no space left on device",
            r"ENOSPC",
            r"disk\s+quota\s+exceeded",
        ),
        confidence=0.95,
        error_type="disk_space_full",
        severity=Severity.HIGH,
        root_cause=(
            "The disk has run out of available space. This prevents writing new data and can "
            "cause application crashes or data corruption."
        ),
        suggested_actions=(
            "Identify large files: du -sh /* | sort -h",
            "Clean up Docker resources: docker system prune -a",
            "Remove old log files and temporary data",
            "Extend the disk if running in a cloud environment",
            "Check the log rotation configuration",
        ),
        prevention_tips=(
            "Implement disk space monitoring with alerts",
            "Configure log rotation policies",
            "Set up automatic cleanup of temporary files",
            "Use separate volumes for logs and data",
        ),
    )


def _port_in_use() -> Rule:
    return _rule(
        id="port_in_use",
        name="Port Already In Use",
        description="Port binding conflicts.",
        keywords=("address already in use", "eaddrinuse", "port is already allocated"),
        patterns=(
            r"address already in use",
            r"EADDRINUSE",
            r"bind.*port.*already",
            r"port\s+\d+.*is already allocated",
        ),
        confidence=0.95,
        error_type="port_already_in_use",
        severity=Severity.MEDIUM,
        root_cause=(
            "The application cannot bind to the specified port because another process is "
            "already using it."
        ),
        suggested_actions=(
            "Find the process using the port: lsof -i :<port> or netstat -tlnp",
            "Stop the conflicting process or service",
            "Configure the application to use a different port",
            "Check for zombie processes from previous runs",
        ),
        prevention_tips=(
            "Use unique ports for each service",
            "Implement graceful shutdown to release ports",
            "Use port 0 for dynamic port allocation in tests",
            "Document port assignments",
        ),
    )


def _authentication_failure() -> Rule:
    return _rule(
        id="authentication_failure",
        name="Authentication Failure",
        description="Authentication and authorization failures.",
        keywords=("authentication failed", "unauthorized", "access denied", "invalid credentials"),
        patterns=(
            r"authentication\s+failed",
            r"401\s+unauthorized",
            r"403\s+forbidden",
            r"invalid\s+(credentials|token|api.?key)",
            r"access\s+denied",
        ),
        confidence=0.85,
        error_type="authentication_failure",
        severity=Severity.HIGH,
        root_cause=(
            "Authentication or authorization failed. Credentials may be invalid, expired, or "
            "missing, or the user/service lacks the required permissions."
        ),
        suggested_actions=(
            "Verify credentials are correct and not expired",
            "Check if API keys or tokens need renewal",
            "Verify the service account has the required permissions",
            "Check for environment variable configuration issues",
            "Review IAM policies and role assignments",
        ),
        prevention_tips=(
            "Use secret management systems (Vault, AWS Secrets Manager)",
            "Implement credential rotation policies",
            "Use service accounts with minimal required permissions",
            "Monitor for authentication failures in security logs",
        ),
    )


def _k8s_image_pull_backoff() -> Rule:
    return _rule(
        id="k8s_image_pull_backoff",
        name="Kubernetes Image Pull BackOff",
        description="Kubernetes image pull failures.",
        keywords=("imagepullbackoff", "errimagepull", "failed to pull image"),
        patterns=(
            r"ImagePullBackOff",
            r"ErrImagePull",
            r"failed to pull image",
            r"rpc error.*pulling image",
        ),
        confidence=0.95,
        error_type="kubernetes_image_pull_failure",
        severity=Severity.HIGH,
        root_cause=(
            "Kubernetes cannot pull the container image. The image may not exist, registry "
            "authentication may be failing, or the image name/tag is wrong."
        ),
        suggested_actions=(
            "Verify the image name and tag are correct",
            "Check if the image exists in the registry",
            "Verify imagePullSecrets are configured correctly",
            "Test registry connectivity from the cluster",
            "Check if the registry requires authentication",
        ),
        prevention_tips=(
            "Use image digests instead of mutable tags",
            "Implement CI/CD checks for image availability",
            "Configure proper registry credentials in secrets",
            "Use a container registry with high availability",
        ),
    )


def validate_rules(rules: Iterable[Rule]) -> tuple[Rule, ...]:
    """Check rule ids are unique, confidences in range and triggers present."""
    out = tuple(rules)
    seen: set[str] = set()
    for rule in out:
        if not rule.id:
            raise InvalidConfigError("rule id must not be empty")
        if rule.id in seen:
            raise InvalidConfigError(f"duplicate rule id: {rule.id}")
        seen.add(rule.id)
        if not 0.0 <= rule.confidence <= 1.0:
            raise InvalidConfigError(
                f"rule {rule.id}: confidence must be between 0 and 1 (got {rule.confidence})"
            )
        if not rule.keywords and not rule.patterns:
            raise InvalidConfigError(f"rule {rule.id}: needs at least one keyword or pattern")
    return out


def default_rules() -> tuple[Rule, ...]:
    """Built-in rules in evaluation order."""
    return validate_rules(
        (
            _docker_build_permission(),
            _docker_daemon_not_running(),
            _npm_install_failure(),
            _out_of_memory(),
            _connection_timeout(),
            _ssl_certificate_error(),
            _disk_space_full(),
            _port_in_use(),
            _authentication_failure(),
            _k8s_image_pull_backoff(),
        )
    )


DEFAULT_RULES: tuple[Rule, ...] = default_rules()
