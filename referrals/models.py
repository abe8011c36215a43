from django.conf import settings
from django.db import models


class ReferralReward(models.Model):
    """Credits paid to a referrer when someone they referred first pays for a plan."""

    referrer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='referral_rewards'
    )
    referred_user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='referral_reward_source'
    )
    user_subscription = models.ForeignKey(
        'subscriptions.UserSubscription',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    purchase_amount = models.DecimalField(max_digits=10, decimal_places=2)
    credits_awarded = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.referrer_id} <- {self.referred_user_id}: {self.credits_awarded}"
