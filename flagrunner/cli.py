from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
import uvicorn

from flagrunner import __version__
from flagrunner.errors import PipelineError
from flagrunner.pipeline.service import PipelineService

app = typer.Typer(help="Outil de résolution des tâches flagrunner", add_completion=False)


def _version_callback(
    ctx: typer.Context,
    param: Any,
    value: bool,
) -> bool:
    if value:
        typer.echo(__version__)
        raise typer.Exit()
    return value


def build_service() -> PipelineService:
    return PipelineService()


def _emit(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def _fail(error: PipelineError | OSError) -> typer.Exit:
    typer.echo(f"Erreur: {error}", err=True)
    return typer.Exit(code=1)


@app.callback()
def _main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Afficher la version et quitter.",
    ),
) -> None:
    """Point d'entrée racine."""


@app.command(help="Lancer l'API JSON (FastAPI).")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Adresse d'écoute."),
    port: int = typer.Option(8000, "--port", help="Port HTTP."),
    reload: bool = typer.Option(False, "--reload", help="Activer l'auto-rechargement."),
) -> None:
    uvicorn.run("flagrunner.api.main:app", host=host, port=port, reload=reload, factory=False)


@app.command(help="Télécharger et décompresser une archive si le dossier est vide.")
def fetch(
    url: str = typer.Argument(..., help="URL de l'archive zip."),
    directory: Path = typer.Argument(..., help="Dossier cible."),
    force: bool = typer.Option(False, "--force", help="Ignorer le cache et retélécharger."),
) -> None:
    service = build_service()
    try:
        fetched = service.ensure_files(url, directory, force=force)
    except PipelineError as error:
        raise _fail(error) from error
    _emit({"directory": str(directory), "fetched": fetched})


@app.command(help="Trier les fichiers d'un dossier par type (text/, images/, audio/).")
def segregate(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Dossier à trier."),
    drop_dir: list[str] = typer.Option([], "--drop-dir", help="Dossier à supprimer."),
    drop_file: list[str] = typer.Option([], "--drop-file", help="Fichier à supprimer."),
) -> None:
    try:
        report = build_service().segregate(directory, drop_dir, drop_file)
    except OSError as error:
        raise _fail(error) from error
    _emit(report.to_dict())


@app.command(help="Convertir en texte tous les fichiers d'un dossier.")
def transform(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Dossier déjà trié."),
) -> None:
    batch = build_service().transform_directory(directory)
    _emit({"contents": batch.contents, "failures": batch.failures})


@app.command(help="Enchaîner téléchargement, tri et conversion.")
def run(
    url: str = typer.Argument(..., help="URL de l'archive zip."),
    directory: Path = typer.Argument(..., help="Dossier de la tâche."),
    force: bool = typer.Option(False, "--force", help="Ignorer le cache et retélécharger."),
    drop_dir: list[str] = typer.Option([], "--drop-dir", help="Dossier à supprimer."),
    drop_file: list[str] = typer.Option([], "--drop-file", help="Fichier à supprimer."),
) -> None:
    service = build_service()
    try:
        result = service.run(url, directory, force=force, unwanted_dirs=drop_dir, unwanted_files=drop_file)
    except (PipelineError, OSError) as error:
        raise _fail(error) from error
    _emit(result.to_dict())


@app.command(help="Extraire une page HTML avec descriptions d'images et transcriptions.")
def page(
    url: str = typer.Argument(..., help="URL de la page."),
    directory: Path = typer.Argument(..., help="Dossier de sortie."),
    instruction: str = typer.Option(
        "Describe the image precisely.",
        "--instruction",
        help="Consigne pour l'analyse des images.",
    ),
    path_prefix: str | None = typer.Option(None, "--path-prefix", help="Préfixe des médias."),
    refresh: bool = typer.Option(False, "--refresh", help="Retélécharger la page même si elle est en cache."),
) -> None:
    service = build_service()
    try:
        result = service.process_page(url, directory, instruction, path_prefix=path_prefix, refresh=refresh)
    except PipelineError as error:
        raise _fail(error) from error
    _emit(result.to_dict())


@app.command(help="Générer une image à partir d'une description et afficher son URL.")
def image(
    prompt: str = typer.Argument(..., help="Description de l'image."),
    size: str = typer.Option("1024x1024", "--size", help="Dimensions demandées."),
) -> None:
    try:
        url = build_service().generate_image(prompt, size=size)
    except PipelineError as error:
        raise _fail(error) from error
    _emit({"url": url})


@app.command(help="Envoyer une réponse au serveur de correction et afficher le drapeau.")
def report(
    task: str = typer.Argument(..., help="Nom de la tâche."),
    answer: str = typer.Argument(..., help="Réponse (JSON ou texte brut)."),
) -> None:
    try:
        parsed: Any = json.loads(answer)
    except json.JSONDecodeError:
        parsed = answer
    try:
        result = build_service().report(task, parsed)
    except PipelineError as error:
        raise _fail(error) from error
    _emit(result.to_dict())


def main() -> None:  # pragma: no cover - délégué à Typer
    app()


__all__ = ["app", "main"]
