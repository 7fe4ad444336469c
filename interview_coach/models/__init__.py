from .session import InterviewSession
from .transcript import Transcript
from .analysis import Analysis
