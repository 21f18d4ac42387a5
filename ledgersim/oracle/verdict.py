"""
ledgersim Oracle: Scenario Verdict

Consumer side of the violation channel. Scans emitted events for crash
signals and turns them into findings and a final verdict.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from pydantic import BaseModel, Field
from ..core.logger import get_logger
from ..core.types import Event, ViolationSignal

logger = get_logger("Verdict")

class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"

class OracleFinding(BaseModel):
    oracle: str
    severity: Severity
    extra: Dict[str, Any] = Field(default_factory=dict)

class TypedBugOracle:
    """
    Flags every `oracle::Crash` event as a critical finding.
    """
    name = "TypedBugOracle"

    def scan(self, events: Iterable[Event]) -> List[OracleFinding]:
        findings = []
        for event in events:
            if event.module == "oracle" and event.name == "Crash":
                signal = ViolationSignal.model_validate(event.data)
                logger.debug("typed_bug_detected", sequence=event.sequence, tx_index=event.tx_index)
                findings.append(OracleFinding(
                    oracle=self.name,
                    severity=Severity.CRITICAL,
                    extra={
                        "event": event.model_dump(mode="json"),
                        "reason": [e.model_dump() for e in signal.reason.msg],
                    },
                ))
        return findings

class VerdictStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    ERROR = "ERROR"

@dataclass
class ScenarioVerdict:
    """
    Final verdict of a scenario run.
    """
    status: VerdictStatus
    events_total: int
    findings: List[OracleFinding] = field(default_factory=list)
    error_message: Optional[str] = None

    def is_pass(self) -> bool:
        return self.status == VerdictStatus.PASS

    def summary(self) -> str:
        if self.status == VerdictStatus.PASS:
            return f"PASS: {self.events_total} events, no violations"
        elif self.status == VerdictStatus.FAIL:
            first = self.findings[0].extra["event"]["sequence"]
            return f"FAIL: {len(self.findings)} violation(s), first at event {first}"
        else:
            return f"ERROR: {self.error_message}"

def judge(events: Iterable[Event], error: Optional[BaseException] = None) -> ScenarioVerdict:
    """
    PASS when no crash was emitted, FAIL otherwise. A scenario that died on
    an exception is ERROR regardless of events.
    """
    events = list(events)
    if error is not None:
        return ScenarioVerdict(
            status=VerdictStatus.ERROR,
            events_total=len(events),
            error_message=str(error),
        )
    findings = TypedBugOracle().scan(events)
    status = VerdictStatus.FAIL if findings else VerdictStatus.PASS
    return ScenarioVerdict(status=status, events_total=len(events), findings=findings)
