from .user import User
from .subject import Subject
from .exam_paper import ExamPaper
from .subject_retrieval import SubjectRetrieval
from .paper_status_event import PaperStatusEvent
