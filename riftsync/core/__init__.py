"""Core domain: ports, services and cross-cutting helpers."""
