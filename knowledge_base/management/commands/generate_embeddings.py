"""
knowledge_base/management/commands/generate_embeddings.py
=========================================================
Management command to (re)build the vector index from the catalog.

Usage:
    python manage.py generate_embeddings
    python manage.py generate_embeddings --clear
"""

from django.core.management.base import BaseCommand, CommandError

from diagnosis_engine.services.exceptions import DiagnosisEngineError
from diagnosis_engine.services.factory import build_embeddings_service


class Command(BaseCommand):
    help = "Generate embeddings for every disease and symptom that has no vector yet."

    def add_arguments(self, parser):
        parser.add_argument(
            "--clear",
            action="store_true",
            help="Delete all existing vectors first, so everything is re-embedded.",
        )

    def handle(self, *args, **options):
        self.stdout.write(self.style.MIGRATE_HEADING("\n=== Generating Embeddings ===\n"))
        service = build_embeddings_service()

        try:
            if options["clear"]:
                removed = service.clear_all_embeddings()
                self.stdout.write(f"  [CLEARED] {removed} vectors")

            result = service.generate_all_embeddings()
        except DiagnosisEngineError as exc:
            raise CommandError(f"{exc.code}: {exc.message}") from exc

        for entity, counts in result.items():
            self.stdout.write(
                f"  [{entity.upper()}] generated={counts['generated']} failed={counts['failed']}"
            )

        failed = sum(counts["failed"] for counts in result.values())
        style = self.style.WARNING if failed else self.style.SUCCESS
        self.stdout.write(style("\n✔ Embedding generation complete.\n"))
