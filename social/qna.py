"""Questions, answers and votes."""

import logging

from django.db import transaction
from django.db.models import Count, Exists, OuterRef, Q, Value

from .exceptions import ValidationFailed
from .models import Answer, AnswerVote, Question, QuestionVote

logger = logging.getLogger(__name__)


def questions(viewer=None, query='', user=None, answered_by=None):
    qs = (
        Question.objects.select_related('user')
        .annotate(
            answer_count=Count('answers', distinct=True),
            vote_count=Count('votes', distinct=True),
        )
    )
    if viewer is not None and viewer.is_authenticated:
        qs = qs.annotate(voted_by_me=Exists(QuestionVote.objects.filter(question=OuterRef('pk'), user=viewer)))
    else:
        qs = qs.annotate(voted_by_me=Value(False))

    if user is not None:
        qs = qs.filter(user=user)
    if answered_by is not None:
        qs = qs.filter(pk__in=Answer.objects.filter(user=answered_by).values('question_id'))

    query = (query or '').strip()
    if query:
        qs = qs.filter(Q(title__icontains=query) | Q(body__icontains=query) | Q(tags__icontains=query))
    return qs.order_by('-created_at')


def answers_for(question, viewer=None):
    qs = question.answers.select_related('user').annotate(vote_count=Count('votes'))
    if viewer is not None and viewer.is_authenticated:
        qs = qs.annotate(voted_by_me=Exists(AnswerVote.objects.filter(answer=OuterRef('pk'), user=viewer)))
    else:
        qs = qs.annotate(voted_by_me=Value(False))
    return qs.order_by('created_at')


def ask(user, title, body='', tags=''):
    title = (title or '').strip()
    if not title:
        raise ValidationFailed("Please give your question a title.")
    question = Question.objects.create(
        user=user,
        title=title,
        body=(body or '').strip(),
        tags=(tags or '').strip(),
    )
    logger.info("User %s asked question %s", user.pk, question.pk)
    return question


def answer(user, question, body):
    body = (body or '').strip()
    if not body:
        raise ValidationFailed("Answer cannot be empty.")
    return Answer.objects.create(question=question, user=user, body=body)


def _toggle(model, user, **lookup):
    with transaction.atomic():
        vote, created = model.objects.get_or_create(user=user, **lookup)
        if not created:
            vote.delete()
    return created, model.objects.filter(**lookup).count()


def toggle_question_vote(user, question):
    """Returns ``(voted, vote_count)``."""
    return _toggle(QuestionVote, user, question=question)


def toggle_answer_vote(user, answer_obj):
    return _toggle(AnswerVote, user, answer=answer_obj)
