from fastapi import APIRouter
from fastapi.encoders import jsonable_encoder

from sqlstream.api.schemas import MergeLedgerRequest, ParseTranscriptRequest
from sqlstream.parsing.ledger import merge_executions
from sqlstream.parsing.parser import ContentParser
from sqlstream.services.stream_client import split_records

router = APIRouter(prefix="/transcripts", tags=["transcripts"])


@router.post("/parse")
def parse_transcript(body: ParseTranscriptRequest):
    """
    Replay a captured transport transcript through a fresh parser, record by
    record, exactly as the streaming client would.
    """
    parser = ContentParser()
    if body.resume_target_id:
        parser.set_resume_target(body.resume_target_id)

    records, rest = split_records(body.transcript)
    result = None
    for record in [*records, rest]:
        if not record.strip():
            continue
        result = parser.parse_chunk(record + "\n\n")
        if result.is_interrupted:
            break

    if result is None:
        result = parser.parse_chunk("")
    return result.to_payload()


@router.post("/ledger/merge")
def merge_ledger(body: MergeLedgerRequest):
    merged = merge_executions(body.existing, body.incoming, body.fallback_thread_id)
    return {"executions": jsonable_encoder([e.model_dump(by_alias=True) for e in merged])}
