"""
APS Viewer Backend - REST API for viewing designs with Autodesk Platform Services

This package provides a FastAPI-based web service that sits between a browser
viewer and Autodesk Platform Services (APS). It enables:

- Issuing short-lived, read-only viewer tokens
- Uploading design files into the application's bucket
- Submitting uploaded designs (or zipped design packages) for translation
- Polling translation status, including per-derivative error messages
- Listing every model stored in the bucket

Platform credentials never leave the process: the browser only ever receives the
read-only public token.

Key Components:
    - main: FastAPI application and HTTP endpoint definitions
    - model_manager: Orchestration of upload, translation and status workflows
    - token_cache: Public/internal credential cache with single-flight refresh
    - storage: Bucket creation, signed uploads and paginated listing
    - derivatives: Translation jobs and manifest parsing
    - configuration: Settings loading from the environment
    - models: Pydantic models for platform documents and API responses

Usage:
    Run the API server with:
        APS_CLIENT_ID=... APS_CLIENT_SECRET=... uvicorn aps_viewer_backend.main:app --host 0.0.0.0 --port 8080
"""
