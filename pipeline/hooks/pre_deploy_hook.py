"""Pipeline pre-deploy hook that re-checks the persisted gate report."""

from __future__ import annotations

import json
import os
import tempfile
import zipfile

import boto3


FAILURE_GUIDE_URL = os.environ.get(
    "GUIDE_URL",
    "https://docs.github.com/en/actions/using-workflows/storing-workflow-data-as-artifacts",
)
REPORT_PATH = os.environ.get("GATE_REPORT_PATH", ".saykai/report.json")

ORDER = ["fatal", "protected_paths", "forbidden_pattern"]


def _extract_artifact(job_data: dict, target_path: str) -> dict:
    credentials = job_data["artifactCredentials"]
    session = boto3.Session(
        aws_access_key_id=credentials["accessKeyId"],
        aws_secret_access_key=credentials["secretAccessKey"],
        aws_session_token=credentials["sessionToken"],
        region_name=os.environ.get("AWS_REGION"),
    )
    s3_client = session.client("s3")

    artifact = job_data["inputArtifacts"][0]
    bucket = artifact["location"]["s3Location"]["bucketName"]
    key = artifact["location"]["s3Location"]["objectKey"]

    with tempfile.NamedTemporaryFile() as tmp_file:
        s3_client.download_file(bucket, key, tmp_file.name)
        with zipfile.ZipFile(tmp_file.name) as zipped:
            with zipped.open(target_path) as report_file:
                return json.loads(report_file.read().decode("utf-8"))


def _describe(item: dict) -> str:
    kind = item.get("type")
    if kind == "forbidden_pattern":
        return f"[{kind}] {item.get('rule_id')} '{item.get('pattern')}' -> {item.get('file')}:{item.get('line')}"
    if kind == "protected_paths":
        files = item.get("touched_files") or []
        return f"[{kind}] {item.get('rule_id')} needs label {item.get('required_label')} -> {len(files)} file(s)"
    return f"[{kind}] {item.get('message')}"


def _top_failures(report: dict, limit: int = 10) -> list[str]:
    failures = (report.get("results") or {}).get("failures", [])
    ordered = sorted(
        failures,
        key=lambda item: ORDER.index(item.get("type")) if item.get("type") in ORDER else len(ORDER),
    )
    return [_describe(item) for item in ordered[:limit]]


def build_message(report: dict) -> tuple[bool, str]:
    passed = bool((report.get("results") or {}).get("passed"))
    pr = report.get("pr") or {}
    message_lines = [
        "Saykai Gate verification (pre-deploy hook)",
        f"Passed: {passed}",
        f"Spec version: {report.get('spec_version', 'unknown')}",
        f"PR: #{pr.get('number')} {pr.get('title') or ''}".rstrip(),
        f"Summary: {report.get('summary', {})}",
    ]
    highlights = _top_failures(report)
    if highlights:
        message_lines.append("Highlights:")
        message_lines.extend(highlights)
    message_lines.append(f"Reports: {FAILURE_GUIDE_URL}")
    return passed, "\n".join(message_lines)


def handler(event, _context):
    job = event["CodePipeline.job"]
    job_id = job["id"]
    data = job["data"]

    client = boto3.client("codepipeline")

    try:
        report = _extract_artifact(data, REPORT_PATH)
    except Exception as exc:  # pylint: disable=broad-except
        client.put_job_failure_result(
            jobId=job_id,
            failureDetails={
                "type": "JobFailed",
                "message": f"Failed to read {REPORT_PATH}: {exc}",
            },
        )
        return

    passed, message = build_message(report)
    if not passed:
        client.put_job_failure_result(
            jobId=job_id,
            failureDetails={
                "type": "JobFailed",
                "message": message,
            },
        )
        return

    client.put_job_success_result(jobId=job_id, executionDetails={"summary": "Saykai Gate re-validation successful"})
